import json

from trivify.exceptions import ValidationFailed


def read_json(request):
    try:
        data = json.loads(request.body.decode("utf-8") or "{}")
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise ValidationFailed("Invalid JSON body")

    if not isinstance(data, dict):
        raise ValidationFailed("Expected a JSON object")

    return data


def validated(form):
    """Return the cleaned data of ``form`` or raise with its first error."""
    if not form.is_valid():
        field, errors = next(iter(form.errors.items()))
        if field == "__all__":
            raise ValidationFailed(errors[0])
        raise ValidationFailed(f"{field}: {errors[0]}")

    return form.cleaned_data
