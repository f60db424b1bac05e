def validation_error_response(error):
    # Handle both ValidationError objects and direct dictionaries
    if hasattr(error, "messages"):
        if isinstance(error.messages, dict):
            formatted_errors = {
                field: messages[0] if isinstance(messages, list) else messages
                for field, messages in error.messages.items()
            }
        elif isinstance(error.messages, list):
            formatted_errors = error.messages[0] if len(error.messages) > 0 else "error"
        else:
            formatted_errors = str(error.messages)
    elif isinstance(error, dict):
        formatted_errors = error
    else:
        formatted_errors = str(error)

    return {"error": formatted_errors}, 400


def error_response(message, status_code):
    return {"error": message}, status_code


def success_response(data=None, status_code=200, **extra):
    """Envelope used by the scheduler endpoints: {"success": true, ...}."""
    body = {"success": True}
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body, status_code
