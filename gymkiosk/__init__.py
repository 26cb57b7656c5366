"""Face-identity check-in kiosk for gym front desks."""

__version__ = "0.1.0"
