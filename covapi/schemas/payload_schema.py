from collections import namedtuple

from marshmallow import Schema, fields, post_load, validate, EXCLUDE, ValidationError

from covapi.utils.errors import BuildValidationError

BuildParams = namedtuple('BuildParams', [
    'branch',
    'commit_sha',
    'committer_name',
    'committer_email',
    'commit_message',
    'service_name',
    'service_job_id',
    'service_job_pull_request',
    'parallel',
    'build_started_at',
])


class Text(fields.String):
    """String field that also accepts numbers, as CI services send ids either way."""

    def _deserialize(self, value, attr, data, **kwargs):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        return super()._deserialize(value, attr, data, **kwargs)


class HeadSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    id = Text(allow_none=True)
    committer_name = Text(allow_none=True)
    committer_email = Text(allow_none=True)
    message = Text(allow_none=True)


class GitSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    branch = Text(allow_none=True)
    head = fields.Nested(HeadSchema, allow_none=True)


class BuildPayloadSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    git = fields.Nested(GitSchema, allow_none=True)
    # Accepted for compatibility with coverage reporters; the server always allocates.
    build_number = fields.Integer(allow_none=True)
    service_name = Text(allow_none=True)
    service_job_id = Text(allow_none=True)
    service_job_pull_request = Text(allow_none=True)
    parallel = fields.Boolean(load_default=False)
    run_at = fields.DateTime(allow_none=True)

    @post_load
    def make_params(self, data, **kwargs):
        return normalize_build_params(data)


def _strip(value):
    return value.strip() if value is not None else None


def normalize_build_params(data):
    """
    Flattens a loaded ingestion payload into BuildParams.

    Commit fields are whitespace-trimmed, the branch defaults to the empty
    string and a blank commit sha counts as absent. CI provenance fields are
    kept verbatim.
    """
    git = data.get('git') or {}
    head = git.get('head') or {}

    return BuildParams(
        branch=_strip(git.get('branch')) or '',
        commit_sha=_strip(head.get('id')) or None,
        committer_name=_strip(head.get('committer_name')),
        committer_email=_strip(head.get('committer_email')),
        commit_message=_strip(head.get('message')),
        service_name=data.get('service_name'),
        service_job_id=data.get('service_job_id'),
        service_job_pull_request=data.get('service_job_pull_request'),
        parallel=bool(data.get('parallel', False)),
        build_started_at=data.get('run_at'),
    )


def load_build_params(payload):
    return load_payload(BuildPayloadSchema(), payload)


class JobPayloadSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    coverage = fields.Float(allow_none=True, validate=validate.Range(min=0, max=100))
    service_job_id = Text(allow_none=True)
    run_at = fields.DateTime(allow_none=True)


class ProjectPayloadSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    name = fields.String(required=True, validate=validate.Length(min=1, max=255))
    base_url = fields.String(allow_none=True)


def load_payload(schema, payload):
    """Loads a request body with the given schema, as a 400 on failure."""
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise BuildValidationError("Valid JSON body object required.")
    try:
        return schema.load(payload)
    except ValidationError as e:
        raise BuildValidationError("Invalid request: {}".format(e.messages))
