"""AI assist: provider client, prompt classifier and schema generation."""
