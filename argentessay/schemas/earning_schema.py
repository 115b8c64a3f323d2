from marshmallow import fields, validate, validates_schema, ValidationError

from argentessay.models.earning import CURRENCIES, PAYMENT_METHODS
from argentessay.schemas.user_schema import BaseSchema


class CreateEarningSchema(BaseSchema):
    writer_id = fields.String(required=True)
    job_id = fields.String(required=True)
    amount = fields.Decimal(required=True, places=2, validate=validate.Range(min=0))
    currency = fields.String(load_default="USD", validate=validate.OneOf(CURRENCIES))
    quality_rating = fields.Float(validate=validate.Range(min=0, max=5))
    completed_on_time = fields.Boolean(load_default=True)
    revision_requests = fields.Integer(load_default=0, validate=validate.Range(min=0))
    notes = fields.String()
    earned_at = fields.DateTime()


class BonusSchema(BaseSchema):
    amount = fields.Decimal(required=True, places=2, validate=validate.Range(min=0))
    reason = fields.String(required=True, validate=validate.Length(min=1, max=255))


class DeductionSchema(BaseSchema):
    amount = fields.Decimal(required=True, places=2, validate=validate.Range(min=0, min_inclusive=False))
    reason = fields.String(required=True, validate=validate.Length(min=1, max=255))


class PaySchema(BaseSchema):
    payment_method = fields.String(required=True, validate=validate.OneOf(PAYMENT_METHODS))
    transaction_id = fields.String(required=True, validate=validate.Length(min=1, max=255))
    processing_fee = fields.Decimal(load_default=0, places=2, validate=validate.Range(min=0))


class QualitySchema(BaseSchema):
    quality_rating = fields.Float(validate=validate.Range(min=0, max=5))
    completed_on_time = fields.Boolean()
    revision_requests = fields.Integer(validate=validate.Range(min=0))


class ReasonSchema(BaseSchema):
    reason = fields.String()


class DateRangeSchema(BaseSchema):
    start_date = fields.DateTime()
    end_date = fields.DateTime()
    page = fields.Integer(load_default=1, validate=validate.Range(min=1))
    limit = fields.Integer(load_default=20, validate=validate.Range(min=1, max=100))

    @validates_schema
    def validate_range(self, data, **kwargs):
        start, end = data.get("start_date"), data.get("end_date")
        if start and end and start > end:
            raise ValidationError("start_date must be before end_date", "start_date")


class MonthlySchema(BaseSchema):
    year = fields.Integer(required=True, validate=validate.Range(min=2000, max=2100))
