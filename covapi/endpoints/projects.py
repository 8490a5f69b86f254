import logging
import json
from datetime import datetime, timezone

from flask import request
from flask_restx import Resource
from flask_api import status
from werkzeug.exceptions import NotFound

from covapi import settings
from covapi.restplus import api
from covapi.cov_database import db
from covapi.models.build import Build
from covapi.models.project import Project as Project_db
from covapi.schemas.build_schema import BuildSchema
from covapi.schemas.payload_schema import ProjectPayloadSchema, load_payload
from covapi.schemas.project_schema import ProjectSchema
from covapi.utils import build_util
from covapi.utils.http_util import err_response, paging_args

log = logging.getLogger(__name__)
ns = api.namespace('projects', description='Operations related to coverage projects')


def _get_project_or_404(project_id):
    project = db.session.get(Project_db, project_id)
    if project is None:
        raise NotFound("No project found with id {}".format(project_id))
    return project


@ns.route('')
class Projects(Resource):

    def get(self):
        """
        Lists all projects with their current coverage
        """
        projects = db.session.query(Project_db).order_by(Project_db.name).all()
        return json.loads(ProjectSchema(many=True).dumps(projects))

    def post(self):
        """
        Create new project. The response is the only place the project token is returned.
        """
        data = load_payload(ProjectPayloadSchema(), request.get_json(silent=True))

        name = data['name'].strip()
        if not name:
            return err_response("Valid project name is required.")
        if db.session.query(Project_db).filter_by(name=name).first() is not None:
            return err_response("Project {} already exists.".format(name), status.HTTP_409_CONFLICT)

        project = Project_db(name=name, base_url=data.get('base_url'), creation_date=datetime.now(timezone.utc))
        db.session.add(project)
        db.session.commit()
        log.info("Created project {} ({})".format(project.id, project.name))

        result = json.loads(ProjectSchema().dumps(project))
        result['token'] = project.token
        return result, status.HTTP_201_CREATED


@ns.route('/<int:project_id>')
class Project(Resource):

    def get(self, project_id):
        """
        Retrieve project
        """
        project = _get_project_or_404(project_id)
        return json.loads(ProjectSchema().dumps(project))


@ns.route('/<int:project_id>/builds')
class ProjectBuilds(Resource):

    def get(self, project_id):
        """
        Lists a project's builds, newest first. Supports page and per_page query args.
        """
        _get_project_or_404(project_id)

        paging = paging_args(request.args, settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
        if paging is None:
            return err_response("page and per_page must be integers.")
        page, per_page = paging

        query = db.session.query(Build).filter_by(project_id=project_id)
        total = query.count()
        builds = query.order_by(Build.build_number.desc()) \
            .offset((page - 1) * per_page) \
            .limit(per_page) \
            .all()

        return {
            'builds': json.loads(BuildSchema(many=True).dumps(builds)),
            'page': page,
            'per_page': per_page,
            'total': total
        }

    def post(self, project_id):
        """
        Record a coverage report. Reuses the project's open build or the build for
        the same branch and commit when there is one, otherwise creates a build.
        Example request
        {
            "service_name": "travis-ci",
            "service_job_id": "1234",
            "git": {
                "branch": "main",
                "head": {
                    "id": "abc123",
                    "committer_name": "Jane Doe",
                    "committer_email": "jane@example.com",
                    "message": "Fix flaky test"
                }
            }
        }
        """
        project = _get_project_or_404(project_id)
        build, created = build_util.get_or_create_build(project, request.get_json(silent=True))

        result = json.loads(BuildSchema().dumps(build))
        return result, status.HTTP_201_CREATED if created else status.HTTP_200_OK
