from django.apps import AppConfig


class StorageConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.storage'
    label = 'storage'
    verbose_name = 'Record Storage & Sync'

    workspace = None

    def ready(self):
        """Build the shared workspace once per process."""
        from .workspace import Workspace

        self.workspace = Workspace.from_settings()
