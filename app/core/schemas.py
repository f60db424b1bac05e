from marshmallow import EXCLUDE, Schema
from app.extensions import ma
from app.extensions import db


def camelcase(name):
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class CamelCaseMixin:
    """Expose snake_case attributes as camelCase keys on the wire."""

    def on_bind_field(self, field_name, field_obj):
        field_obj.data_key = camelcase(field_obj.data_key or field_name)


class BaseSchema(CamelCaseMixin, ma.SQLAlchemyAutoSchema):
    class Meta:
        load_instance = True
        sqla_session = db.session
        unknown = EXCLUDE


class PayloadSchema(CamelCaseMixin, Schema):
    """Request/response shapes that are not backed by a table."""

    class Meta:
        unknown = EXCLUDE
