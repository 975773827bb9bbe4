from marshmallow import Schema, fields, pre_load, validates, validates_schema, ValidationError

MIN_PASSWORD_LENGTH = 8


def _norm(v):
    return v.strip().lower() if isinstance(v, str) else v


def _check_password(value):
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")


class UserCreateSchema(Schema):
    username = fields.String(required=True)
    email = fields.Email(required=True)
    full_name = fields.String(required=True)
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict):
            data = dict(data)
            for key in ("username", "email"):
                if key in data:
                    data[key] = _norm(data[key])
            if isinstance(data.get("full_name"), str):
                data["full_name"] = data["full_name"].strip()
        return data

    @validates("username")
    def validate_username(self, value, **kwargs):
        if not value or any(ch.isspace() for ch in value):
            raise ValidationError("Username must be non-empty and contain no whitespace.")

    @validates("full_name")
    def validate_full_name(self, value, **kwargs):
        if not value:
            raise ValidationError("Full name cannot be empty.")

    @validates("password")
    def validate_password(self, value, **kwargs):
        _check_password(value)


class UserLoginSchema(Schema):
    """Either username or email identifies the user."""
    username = fields.String()
    email = fields.String()
    password = fields.String(required=True, load_only=True)

    @validates_schema
    def require_identifier(self, data, **kwargs):
        if not (data.get("username") or "").strip() and not (data.get("email") or "").strip():
            raise ValidationError("Email or username is required.", field_name="username")
        if not data.get("password", "").strip():
            raise ValidationError("Password is required.", field_name="password")


class ChangePasswordSchema(Schema):
    old_password = fields.String(required=True, load_only=True)
    new_password = fields.String(required=True, load_only=True)

    @validates("new_password")
    def validate_new_password(self, value, **kwargs):
        _check_password(value)


class UserUpdateSchema(Schema):
    full_name = fields.String()
    email = fields.Email()

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = _norm(data["email"])
        return data

    @validates_schema
    def require_change(self, data, **kwargs):
        if not data:
            raise ValidationError("Provide full_name and/or email.")
        if "full_name" in data and not data["full_name"].strip():
            raise ValidationError("Full name cannot be empty.", field_name="full_name")


class RefreshSchema(Schema):
    refresh_token = fields.String()


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    username = fields.String()
    email = fields.String()
    full_name = fields.String(allow_none=True)
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
