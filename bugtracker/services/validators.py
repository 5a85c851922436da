"""
Input validation for request bodies.

Each ``validate_*`` function takes the raw JSON dict and returns a normalized
dict, or raises ``ValidationError`` with a field-level ``details`` map.
Fields absent from the input are absent from the result, so update schemas
can tell "not provided" apart from "cleared".
"""

from email_validator import EmailNotValidError, validate_email

from bugtracker.core.exceptions import ValidationError
from bugtracker.models.auth import ROLES
from bugtracker.models.bug import BUG_STATUSES
from bugtracker.models.project import PROJECT_STATUSES

MIN_PASSWORD_LENGTH = 6


def _require_dict(data) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _raise_if(errors: dict) -> None:
    if errors:
        field, msg = next(iter(errors.items()))
        raise ValidationError(f"{field}: {msg}", details=errors)


def _string(data, key, errors, *, required=False, min_len=None, max_len=None, allow_empty=False):
    if key not in data or data[key] is None:
        if required:
            errors[key] = "is required"
        elif key in data and allow_empty:
            return ""
        return None
    value = data[key]
    if not isinstance(value, str):
        errors[key] = "must be a string"
        return None
    value = value.strip()
    if not value and allow_empty:
        return ""
    if min_len is not None and len(value) < min_len:
        errors[key] = f"must be at least {min_len} characters"
        return None
    if max_len is not None and len(value) > max_len:
        errors[key] = f"must be at most {max_len} characters"
        return None
    return value


def _id_list(data, key, errors):
    if key not in data or data[key] is None:
        return None
    value = data[key]
    if not isinstance(value, list) or not all(isinstance(v, str) and v.strip() for v in value):
        errors[key] = "must be a list of ids"
        return None
    seen = []
    for v in value:
        v = v.strip()
        if v not in seen:
            seen.append(v)
    return seen


def _id(data, key, errors):
    if key not in data or data[key] is None:
        return None
    value = data[key]
    if not isinstance(value, str) or not value.strip():
        errors[key] = "must be an id"
        return None
    return value.strip()


def _email(data, errors):
    raw = _string(data, "email", errors, required=True)
    if raw is None:
        return None
    try:
        return validate_email(raw, check_deliverability=False).normalized.lower()
    except EmailNotValidError as exc:
        errors["email"] = str(exc)
        return None


def _choice(data, key, choices, errors, *, required=False):
    value = _string(data, key, errors, required=required)
    if value is None:
        return None
    if value not in choices:
        errors[key] = f"must be one of {', '.join(sorted(choices))}"
        return None
    return value


def _put(out, key, value):
    if value is not None:
        out[key] = value


# ── Users / auth ─────────────────────────────────────────────────────────────

def validate_user_create(data) -> dict:
    """{email, password, role, name?}"""
    data = _require_dict(data)
    errors: dict = {}
    out: dict = {}
    _put(out, "email", _email(data, errors))
    _put(out, "password", _string(data, "password", errors, required=True, min_len=MIN_PASSWORD_LENGTH))
    _put(out, "role", _choice(data, "role", ROLES, errors, required=True))
    _put(out, "name", _string(data, "name", errors, max_len=200))
    _raise_if(errors)
    return out


def validate_user_update(data) -> dict:
    """{role?, is_active?, name?} — admin edits."""
    data = _require_dict(data)
    errors: dict = {}
    out: dict = {}
    _put(out, "role", _choice(data, "role", ROLES, errors))
    _put(out, "name", _string(data, "name", errors, max_len=200))
    if "is_active" in data:
        if isinstance(data["is_active"], bool):
            out["is_active"] = data["is_active"]
        else:
            errors["is_active"] = "must be a boolean"
    _raise_if(errors)
    if not out:
        raise ValidationError("Nothing to update")
    return out


def validate_login(data) -> dict:
    """{email, password}"""
    data = _require_dict(data)
    errors: dict = {}
    out: dict = {}
    email = _string(data, "email", errors, required=True)
    _put(out, "email", email.lower() if email else None)
    password = data.get("password")
    if not isinstance(password, str) or not password:
        errors["password"] = "is required"
    else:
        out["password"] = password
    _raise_if(errors)
    return out


# ── Projects ─────────────────────────────────────────────────────────────────

def validate_project_create(data) -> dict:
    """{name, description?, members?}"""
    data = _require_dict(data)
    errors: dict = {}
    out: dict = {}
    _put(out, "name", _string(data, "name", errors, required=True, min_len=2, max_len=200))
    _put(out, "description", _string(data, "description", errors, allow_empty=True))
    _put(out, "members", _id_list(data, "members", errors))
    _raise_if(errors)
    return out


def validate_project_update(data) -> dict:
    """{name?, description?, status?}"""
    data = _require_dict(data)
    errors: dict = {}
    out: dict = {}
    _put(out, "name", _string(data, "name", errors, min_len=2, max_len=200))
    _put(out, "description", _string(data, "description", errors, allow_empty=True))
    _put(out, "status", _choice(data, "status", PROJECT_STATUSES, errors))
    _raise_if(errors)
    if not out:
        raise ValidationError("Nothing to update")
    return out


def validate_project_members(data) -> dict:
    """{add?, remove?} — at least one of them."""
    data = _require_dict(data)
    errors: dict = {}
    out: dict = {}
    _put(out, "add", _id_list(data, "add", errors))
    _put(out, "remove", _id_list(data, "remove", errors))
    _raise_if(errors)
    if not out:
        raise ValidationError("add or remove is required", details={"add": "add or remove is required"})
    return out


# ── Modules ──────────────────────────────────────────────────────────────────

def validate_module_create(data) -> dict:
    """{name}"""
    data = _require_dict(data)
    errors: dict = {}
    out: dict = {}
    _put(out, "name", _string(data, "name", errors, required=True, min_len=2, max_len=200))
    _raise_if(errors)
    return out


# ── Bugs ─────────────────────────────────────────────────────────────────────

def validate_bug_create(data) -> dict:
    """{title, description?, assignees?, module_id?}"""
    data = _require_dict(data)
    errors: dict = {}
    out: dict = {}
    _put(out, "title", _string(data, "title", errors, required=True, min_len=3, max_len=300))
    _put(out, "description", _string(data, "description", errors, allow_empty=True))
    _put(out, "assignees", _id_list(data, "assignees", errors))
    _put(out, "module_id", _id(data, "module_id", errors))
    if "status" in data:
        errors["status"] = "is set by the server"
    _raise_if(errors)
    return out


def validate_bug_update(data) -> dict:
    """Same fields as create, all optional, at least one present."""
    data = _require_dict(data)
    errors: dict = {}
    out: dict = {}
    _put(out, "title", _string(data, "title", errors, min_len=3, max_len=300))
    _put(out, "description", _string(data, "description", errors, allow_empty=True))
    _put(out, "assignees", _id_list(data, "assignees", errors))
    _put(out, "module_id", _id(data, "module_id", errors))
    if "status" in data:
        errors["status"] = "use the status endpoint"
    _raise_if(errors)
    if not out:
        raise ValidationError("Nothing to update")
    return out


def validate_status_change(data) -> dict:
    """{from, to, note?}"""
    data = _require_dict(data)
    errors: dict = {}
    out: dict = {}
    _put(out, "from", _choice(data, "from", set(BUG_STATUSES), errors, required=True))
    _put(out, "to", _choice(data, "to", set(BUG_STATUSES), errors, required=True))
    _put(out, "note", _string(data, "note", errors, allow_empty=True))
    _raise_if(errors)
    return out
