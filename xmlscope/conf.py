from django.conf import settings
from django.core.signals import setting_changed
from django.dispatch import receiver

_originals = {}

# -- error handling

# The policy that decides which reported parser problems abort the parse.
# The default fails on every warning, recoverable error and fatal error.
XMLSCOPE_ERROR_POLICY = getattr(
    settings, "XMLSCOPE_ERROR_POLICY", "xmlscope.parsers.errors.FailFastPolicy"
)

# -- schema validation

# How many compiled XML Schema sets are kept around.
# Compiling is expensive, so these are reused between parser sessions.
XMLSCOPE_SCHEMA_CACHE_SIZE = getattr(settings, "XMLSCOPE_SCHEMA_CACHE_SIZE", 20)


@receiver(setting_changed)
def _on_settings_change(setting, value, enter, **kwargs):
    if not setting.startswith("XMLSCOPE_"):
        return

    conf_module = globals()
    if value is None and not enter:
        # override_settings().disable() returns what the django settings module had.
        # Revert to our defaults here instead.
        value = _originals.get(setting)
    else:
        # Track defaults of this file for reverting to them
        _originals.setdefault(setting, conf_module[setting])

    conf_module[setting] = value
