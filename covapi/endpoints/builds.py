import logging
import json

from flask import request
from flask_restx import Resource
from flask_api import status
from werkzeug.exceptions import NotFound

from covapi.restplus import api
from covapi.cov_database import db
from covapi.models.build import Build as Build_db
from covapi.schemas.build_schema import BuildSchema
from covapi.schemas.job_schema import JobSchema
from covapi.utils import build_util, job_util
from covapi.utils.build_store import SqlBuildStore

log = logging.getLogger(__name__)
ns = api.namespace('builds', description='Operations related to coverage builds')


def _get_build_or_404(build_id):
    build = db.session.get(Build_db, build_id)
    if build is None:
        raise NotFound("No build found with id {}".format(build_id))
    return build


def _build_response(build, store):
    result = json.loads(BuildSchema().dumps(build))
    result['jobs'] = json.loads(JobSchema(many=True).dumps(store.jobs_for(build)))
    return result


@ns.route('/<int:build_id>')
class Build(Resource):

    def get(self, build_id):
        """
        Retrieve a build with its jobs and the coverage change from the previous build on its branch
        """
        build = _get_build_or_404(build_id)
        return _build_response(build, SqlBuildStore())


@ns.route('/<int:build_id>/jobs')
class BuildJobs(Resource):

    def post(self, build_id):
        """
        Record one CI job's coverage and recompute the build's coverage.
        Example request
        {
            "coverage": 87.5,
            "service_job_id": "1234.1"
        }
        """
        build = _get_build_or_404(build_id)
        store = SqlBuildStore()
        job = job_util.record_job(build, request.get_json(silent=True), store)

        return {
            'job': json.loads(JobSchema().dumps(job)),
            'build': _build_response(build, store)
        }, status.HTTP_201_CREATED


@ns.route('/<int:build_id>/complete')
class BuildComplete(Resource):

    def post(self, build_id):
        """
        Mark an open (parallel) build as completed
        """
        build = _get_build_or_404(build_id)
        store = SqlBuildStore()
        build_util.complete_build(build, store)
        return _build_response(build, store)
