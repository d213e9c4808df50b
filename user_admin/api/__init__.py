"""HTTP layer: Flask blueprints, auth decorators and error handlers."""
