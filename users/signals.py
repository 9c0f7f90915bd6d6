from django.dispatch import Signal

# Sent with ``instance`` (the role), ``before`` and ``after`` (sorted permission ids).
role_permissions_synced = Signal()
