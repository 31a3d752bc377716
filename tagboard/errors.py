from flask import jsonify, render_template, request


class ValidationError(Exception):
    """A Post, Tag or PostTag failed one of its field constraints.

    ``errors`` maps a field name to its list of messages, e.g.
    ``{"title": ["can't be blank"]}``.
    """

    def __init__(self, errors):
        self.errors = {field: list(messages) for field, messages in errors.items()}
        super().__init__("; ".join(self.full_messages()))

    def full_messages(self):
        messages = []
        for field, field_messages in self.errors.items():
            label = field.replace("_", " ").capitalize()
            messages.extend(f"{label} {message}" for message in field_messages)
        return messages


class NotFoundError(Exception):
    """The targeted Post or Tag does not exist."""

    def __init__(self, resource, identifier):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} {identifier!r} not found")


def wants_json():
    """True when the caller sent JSON or prefers a JSON response."""
    if request.is_json:
        return True
    return request.accept_mimetypes.best == "application/json"


def register_error_handlers(app):
    @app.errorhandler(NotFoundError)
    def record_not_found(e):
        app.logger.info("Not found: %s", e)
        return not_found(e)

    @app.errorhandler(404)
    def not_found(e):
        if wants_json():
            return jsonify(error="Not Found"), 404
        return render_template("errors/404.html"), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        if wants_json():
            return jsonify(error="Method Not Allowed"), 405
        return render_template("errors/405.html"), 405

    @app.errorhandler(500)
    def internal_error(e):
        app.logger.exception("Internal server error: %s", e)
        if wants_json():
            return jsonify(error="Internal Server Error"), 500
        return render_template("errors/500.html"), 500
