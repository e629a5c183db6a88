"""Web framework integration for logify."""
