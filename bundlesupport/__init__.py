"""Install OSGi bundles into a running Sling instance."""

__version__ = "1.0.0"
