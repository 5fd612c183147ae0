"""Built-in form templates."""

import copy
from typing import Any, Optional

FORM_TEMPLATES: dict[str, dict[str, Any]] = {
    "contact": {
        "title": "Contact Form",
        "description": "Get in touch with us",
        "fields": [
            {
                "id": "name",
                "type": "text",
                "label": "Name",
                "placeholder": "Enter your name",
                "required": True,
            },
            {
                "id": "email",
                "type": "email",
                "label": "Email",
                "placeholder": "Enter your email",
                "required": True,
            },
            {
                "id": "message",
                "type": "textarea",
                "label": "Message",
                "placeholder": "Enter your message",
                "required": True,
            },
        ],
    },
    "saasOnboarding": {
        "title": "SaaS Onboarding Form",
        "description": "Welcome! Let's get you set up",
        "fields": [
            {
                "id": "companyName",
                "type": "text",
                "label": "Company Name",
                "placeholder": "Enter your company name",
                "required": True,
            },
            {
                "id": "role",
                "type": "select",
                "label": "What's your role?",
                "options": ["Founder", "CTO", "Product Manager", "Developer", "Other"],
                "required": True,
            },
            {
                "id": "teamSize",
                "type": "select",
                "label": "Team Size",
                "options": ["1-10", "11-50", "51-200", "201-500", "500+"],
                "required": True,
            },
            {
                "id": "useCase",
                "type": "textarea",
                "label": "What are you planning to use this for?",
                "placeholder": "Describe your use case",
                "required": False,
            },
        ],
    },
    "eventRegistration": {
        "title": "Event Registration",
        "description": "Register for our upcoming event",
        "fields": [
            {
                "id": "fullName",
                "type": "text",
                "label": "Full Name",
                "placeholder": "Enter your full name",
                "required": True,
            },
            {
                "id": "email",
                "type": "email",
                "label": "Email",
                "placeholder": "Enter your email",
                "required": True,
            },
            {
                "id": "phone",
                "type": "text",
                "label": "Phone Number",
                "placeholder": "Enter your phone number",
                "required": False,
            },
            {
                "id": "dietary",
                "type": "select",
                "label": "Dietary Requirements",
                "options": ["None", "Vegetarian", "Vegan", "Gluten-free", "Other"],
                "required": False,
            },
            {
                "id": "notes",
                "type": "textarea",
                "label": "Additional Notes",
                "placeholder": "Any additional information?",
                "required": False,
            },
        ],
    },
    "feedback": {
        "title": "Feedback Form",
        "description": "We'd love to hear your thoughts",
        "fields": [
            {
                "id": "rating",
                "type": "radio",
                "label": "How would you rate your experience?",
                "options": ["1", "2", "3", "4", "5"],
                "required": True,
            },
            {
                "id": "feedback",
                "type": "textarea",
                "label": "Your Feedback",
                "placeholder": "Tell us what you think",
                "required": True,
            },
            {
                "id": "recommend",
                "type": "checkbox",
                "label": "Would you recommend us to others?",
                "required": False,
            },
        ],
    },
}


def get_template(name: str) -> Optional[dict[str, Any]]:
    """Deep copy of a template schema, or None for unknown names."""
    template = FORM_TEMPLATES.get(name)
    return copy.deepcopy(template) if template is not None else None


def get_all_template_names() -> list[str]:
    return list(FORM_TEMPLATES)
