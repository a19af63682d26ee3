"""Utility functions for the application."""

import datetime

from flask import request
from werkzeug.datastructures import MultiDict

from .errors import ValidationError


def to_json(value):
    """Make Firestore data JSON-serializable, with datetimes as ISO strings."""
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_json(v) for v in value]
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    return value


def get_json_body():
    """The request's JSON object, or an empty dict when there is no body."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def json_formdata(data):
    """Turn a JSON object into form data for a FlaskForm.

    Nulls and nested values are left out; booleans become "true"/"false".
    """
    formdata = MultiDict()
    for key, value in data.items():
        if value is None or isinstance(value, (dict, list)):
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        formdata.add(key, str(value))
    return formdata


def raise_form_errors(form):
    """Raise a ValidationError carrying the first error of a failed form."""
    for field_name, errors in form.errors.items():
        if errors:
            label = getattr(form, field_name).label.text
            raise ValidationError(f"{label}: {errors[0]}")
    raise ValidationError()


def parse_bool_arg(name, default=False):
    """Read a boolean query parameter such as ``?includeInstances=true``."""
    value = request.args.get(name)
    if value is None:
        return default
    return value.lower() in ["true", "1", "t", "yes"]
