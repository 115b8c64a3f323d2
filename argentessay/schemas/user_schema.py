from marshmallow import EXCLUDE, fields, validate, pre_load

from argentessay.extensions import ma
from argentessay.models.user import USER_STATUSES


class BaseSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE


class RegisterSchema(BaseSchema):
    first_name = fields.String(required=True, validate=validate.Length(min=1, max=120))
    last_name = fields.String(required=True, validate=validate.Length(min=1, max=120))
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=6))
    phone = fields.String(required=True, validate=validate.Length(min=1, max=50))
    country = fields.String(required=True, validate=validate.Length(min=1, max=100))

    @pre_load
    def normalize(self, data, **kwargs):
        data = dict(data)
        if isinstance(data.get("email"), str):
            data["email"] = data["email"].strip().lower()
        # accept the camelCase names the web client sends
        for camel, snake in (("firstName", "first_name"), ("lastName", "last_name")):
            if camel in data and snake not in data:
                data[snake] = data.pop(camel)
        return data


class LoginSchema(BaseSchema):
    email = fields.String(required=True)
    password = fields.String(required=True, load_only=True)


class VerifyEmailSchema(BaseSchema):
    email = fields.Email(required=True)
    token = fields.String(required=True, validate=validate.Length(equal=6))


class ForgotPasswordSchema(BaseSchema):
    email = fields.Email(required=True)


class ResetPasswordSchema(BaseSchema):
    token = fields.String(required=True)
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=6))


class UpdatePasswordSchema(BaseSchema):
    current_password = fields.String(required=True, load_only=True)
    new_password = fields.String(required=True, load_only=True, validate=validate.Length(min=6))


class ProfileUpdateSchema(BaseSchema):
    first_name = fields.String(validate=validate.Length(min=1, max=120))
    last_name = fields.String(validate=validate.Length(min=1, max=120))
    phone = fields.String(validate=validate.Length(max=50))
    country = fields.String(validate=validate.Length(max=100))
    bio = fields.String(validate=validate.Length(max=500))
    degree = fields.String()
    field_of_study = fields.String()
    university = fields.String()
    graduation_year = fields.Integer(validate=validate.Range(min=1950))
    subject_expertise = fields.List(fields.String())
    writing_experience = fields.Integer(validate=validate.Range(min=0))


class WriterFilterSchema(BaseSchema):
    status = fields.String(validate=validate.OneOf(USER_STATUSES))
    search = fields.String()
    page = fields.Integer(load_default=1, validate=validate.Range(min=1))
    limit = fields.Integer(load_default=20, validate=validate.Range(min=1, max=100))


class SuspendSchema(BaseSchema):
    reason = fields.String()
