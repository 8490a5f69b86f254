from covapi.models.job import Job
from marshmallow_sqlalchemy import SQLAlchemyAutoSchema


class JobSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = Job
        include_fk = True
        load_instance = True
