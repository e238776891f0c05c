from django.conf import settings

DEFAULTS = {
    "DESIGNER_ROLES": ["designer", "business_owner", "admin"],
    "ADMIN_ROLES": ["admin"],
    "WORKLOAD_ROLES": ["designer", "business_owner"],
    "PENDING_REQUESTS_LIMIT": 50,
    "CURRENCY": "ARS",
    "EVENT_SINK": "customization.events.LoggingEventSink",
}


def get_setting(name):
    return getattr(settings, "CUSTOMIZATION", {}).get(name, DEFAULTS[name])
