import logging

from covapi.models.job import Job
from covapi.schemas.payload_schema import JobPayloadSchema, load_payload
from covapi.utils.build_store import SqlBuildStore
from covapi.utils.build_util import update_coverage
from covapi.utils.errors import BuildValidationError

log = logging.getLogger(__name__)


def record_job(build, payload, store=None):
    """
    Stores one CI job's coverage on a build and recomputes the build's coverage.
    """
    store = store or SqlBuildStore()
    data = load_payload(JobPayloadSchema(), payload)

    with store.transaction():
        # Job numbers are allocated under the same per-project lock as build numbers
        if store.lock_project(build.project_id) is None:
            raise BuildValidationError("No project found with id {}".format(build.project_id))
        job = Job(
            build_id=build.id,
            job_number=store.next_job_number(build),
            coverage=data.get('coverage'),
            service_job_id=data.get('service_job_id'),
            run_at=data.get('run_at')
        )
        store.add_job(job)

    log.info("Recorded job #{} for build {} with coverage {}".format(job.job_number, build.id, job.coverage))
    update_coverage(build, store)
    return job
