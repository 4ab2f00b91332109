"""Federal tax withholding engine for payment documents."""

__version__ = "0.1.0"
