from flask import request

from Utils.appError import InvalidRequest


def json_body(default_empty=True):
    """Request body as a dict.

    A missing or unparsable body is treated as empty (or None when
    `default_empty` is False); any other JSON value is rejected.
    """
    data = request.get_json(silent=True)
    if data is None:
        return {} if default_empty else None
    if not isinstance(data, dict):
        raise InvalidRequest("Request body must be a JSON object")
    return data
