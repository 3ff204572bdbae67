"""Book collaboration backend: co-author invitations, permissions and notifications."""

__version__ = "1.0.0"
