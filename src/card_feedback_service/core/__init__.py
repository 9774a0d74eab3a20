"""Core infrastructure: state, lifecycle, middleware, and error handling."""
