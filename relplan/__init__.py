"""relplan: resolve and validate package versions for a deployment release."""

__version__ = "0.3.0"
