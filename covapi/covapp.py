#!/usr/bin/env python

import logging.config

import os
from flask import Flask, Blueprint
from covapi import settings
from covapi.endpoints.projects import ns as projects_namespace
from covapi.endpoints.builds import ns as builds_namespace
from covapi.restplus import api
from covapi.cov_database import db
from covapi.models import initialize_sql
from flask_cors import CORS

app = Flask(__name__)
CORS(app)
logging_conf_path = os.path.normpath(os.path.join(os.path.dirname(__file__), '../logging.conf'))
logging.config.fileConfig(logging_conf_path, disable_existing_loggers=False)
log = logging.getLogger(__name__)


def engine_options(database_url):
    # sqlite uses a single-connection pool that takes no sizing options
    if database_url.startswith('sqlite'):
        return {'pool_pre_ping': True}
    return {
        'pool_size': settings.DATABASE_POOL_SIZE,
        'pool_timeout': settings.DATABASE_POOL_TIMEOUT,
        'pool_pre_ping': True
    }


def configure_app(flask_app):
    flask_app.config['SERVER_NAME'] = settings.FLASK_SERVER_NAME


def initialize_app(flask_app):
    blueprint = Blueprint('api', __name__, url_prefix='/api')
    api.init_app(blueprint)
    api.add_namespace(projects_namespace)
    api.add_namespace(builds_namespace)
    flask_app.register_blueprint(blueprint)


initialize_app(app)

app.config['RESTX_VALIDATE'] = settings.RESTPLUS_VALIDATE
app.config['RESTX_MASK_SWAGGER'] = settings.RESTPLUS_MASK_SWAGGER
app.config['RESTX_ERROR_404_HELP'] = settings.RESTPLUS_ERROR_404_HELP
app.config['SWAGGER_UI_DOC_EXPANSION'] = settings.RESTPLUS_SWAGGER_UI_DOC_EXPANSION

app.config['SQLALCHEMY_DATABASE_URI'] = settings.DATABASE_URL
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
app.config['SQLALCHEMY_ENGINE_OPTIONS'] = engine_options(settings.DATABASE_URL)

app.app_context().push()
db.init_app(app)
initialize_sql(db.engine)


@app.route('/')
def index():
    return '<a href="/api/">Coverage API</a>'


def main():
    configure_app(app)
    log.info('>>>>> Starting development server at http://{}/api/ <<<<<'.format(app.config['SERVER_NAME']))
    app.run(debug=settings.FLASK_DEBUG)


if __name__ == "__main__":
    main()
