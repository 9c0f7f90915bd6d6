"""Test runner used by ``manage.py test``."""

from django.test.runner import DiscoverRunner


class NonInteractiveDiscoverRunner(DiscoverRunner):
    """Discover runner that drops stale test databases without asking."""

    def __init__(self, *args, **kwargs):
        kwargs["interactive"] = False
        super().__init__(*args, **kwargs)
