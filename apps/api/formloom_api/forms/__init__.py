"""Form domain helpers: schema validation, slugs, analytics, templates."""
