from marshmallow import fields
from covapi.models.build import Build
from covapi.utils.build_util import coverage_diff
from marshmallow_sqlalchemy import SQLAlchemyAutoSchema


class BuildSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = Build
        include_fk = True
        load_instance = True

    coverage_diff = fields.Method('get_coverage_diff')

    def get_coverage_diff(self, build):
        return coverage_diff(build)
