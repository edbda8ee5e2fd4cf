"""Package metadata for mailcraft."""

__app_name__ = "mailcraft"
__version__ = "0.3.0"
__author__ = "mailcraft contributors"
__email__ = "maintainers@mailcraft.dev"
__url__ = "https://github.com/mailcraft/mailcraft"
__description__ = "Email composition builder with SMTP session configuration."
__license_type__ = "MIT"

__all__ = [
    "__app_name__",
    "__author__",
    "__description__",
    "__email__",
    "__license_type__",
    "__url__",
    "__version__",
]
