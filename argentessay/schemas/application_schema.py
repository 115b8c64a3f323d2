from datetime import datetime

from marshmallow import fields, validate, validates, ValidationError

from argentessay.models.application import (
    DEGREES,
    LANGUAGE_LEVELS,
    REJECTION_REASONS,
    APPLICATION_STATUSES,
)
from argentessay.schemas.user_schema import BaseSchema


class PersonalDetailsSchema(BaseSchema):
    first_name = fields.String(validate=validate.Length(min=1, max=120))
    last_name = fields.String(validate=validate.Length(min=1, max=120))
    phone = fields.String(validate=validate.Length(min=1, max=50))
    country = fields.String(validate=validate.Length(min=1, max=100))


class EducationSchema(BaseSchema):
    highest_degree = fields.String(validate=validate.OneOf(DEGREES))
    field_of_study = fields.String(validate=validate.Length(min=1, max=255))
    university = fields.String(validate=validate.Length(min=1, max=255))
    graduation_year = fields.Integer()
    gpa = fields.Float(allow_none=True, validate=validate.Range(min=0, max=4.0))
    additional_certifications = fields.List(fields.String())

    @validates("graduation_year")
    def validate_graduation_year(self, value, **kwargs):
        latest = datetime.utcnow().year + 10
        if not 1950 <= value <= latest:
            raise ValidationError(f"Graduation year must be between 1950 and {latest}.")


class LanguageSchema(BaseSchema):
    language = fields.String(required=True)
    level = fields.String(required=True, validate=validate.OneOf(LANGUAGE_LEVELS))


class ExpertiseSchema(BaseSchema):
    primary_subjects = fields.List(fields.String(validate=validate.Length(min=1)))
    secondary_subjects = fields.List(fields.String())
    writing_experience = fields.Integer(validate=validate.Range(min=0))
    specializations = fields.List(fields.String())
    language_proficiency = fields.List(fields.Nested(LanguageSchema))


class StartTestSchema(BaseSchema):
    test_id = fields.String(required=True)


class AnswerSchema(BaseSchema):
    question_id = fields.String(required=True)
    answer = fields.String(required=True)
    time_spent = fields.Integer(validate=validate.Range(min=0))


class CompleteTestSchema(BaseSchema):
    answers = fields.List(fields.Nested(AnswerSchema), required=True)
    time_spent = fields.Integer(validate=validate.Range(min=0))


class GradeTestSchema(BaseSchema):
    score = fields.Float(required=True, validate=validate.Range(min=0, max=100))
    feedback = fields.String()


class ApproveSchema(BaseSchema):
    notes = fields.String()
    rating = fields.Integer(validate=validate.Range(min=1, max=5))
    strengths = fields.List(fields.String())
    weaknesses = fields.List(fields.String())
    recommendations = fields.String()


class RejectSchema(BaseSchema):
    reason = fields.String(required=True, validate=validate.OneOf(REJECTION_REASONS))
    details = fields.String()
    reapply_after = fields.DateTime()
    can_reapply = fields.Boolean(load_default=True)


class HoldSchema(BaseSchema):
    notes = fields.String()


class NoteSchema(BaseSchema):
    content = fields.String(required=True, validate=validate.Length(min=1))
    is_internal = fields.Boolean(load_default=True)


class VerifyDocumentSchema(BaseSchema):
    kind = fields.String(required=True, validate=validate.OneOf(("cv", "sample_works", "certificates")))
    index = fields.Integer(validate=validate.Range(min=0))
    verified = fields.Boolean(load_default=True)


class ApplicationFilterSchema(BaseSchema):
    status = fields.String(validate=validate.OneOf(APPLICATION_STATUSES + ("all",)))
    search = fields.String()
    page = fields.Integer(load_default=1, validate=validate.Range(min=1))
    limit = fields.Integer(load_default=20, validate=validate.Range(min=1, max=100))
