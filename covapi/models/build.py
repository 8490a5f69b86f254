import datetime

from sqlalchemy import text

from covapi.models import Base
from covapi.cov_database import db


def utcnow():
    return datetime.datetime.now(datetime.timezone.utc)


class Build(Base):
    """
    One coverage report for a project, tied to a commit on a branch and
    aggregating the coverage of its jobs.
    """

    __tablename__ = 'build'
    __table_args__ = (
        db.UniqueConstraint('project_id', 'build_number', name='uq_build_project_number'),
        db.UniqueConstraint('project_id', 'branch', 'commit_sha', name='uq_build_project_branch_commit'),
        # At most one open build per project
        db.Index('uq_build_project_incomplete', 'project_id', unique=True,
                 postgresql_where=text('NOT completed'), sqlite_where=text('NOT completed')),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('project.id'), nullable=False, index=True)
    build_number = db.Column(db.Integer, nullable=False)
    branch = db.Column(db.String(), nullable=False, default='')

    commit_sha = db.Column(db.String(), nullable=True)
    committer_name = db.Column(db.String(), nullable=True)
    committer_email = db.Column(db.String(), nullable=True)
    commit_message = db.Column(db.String(), nullable=True)

    service_name = db.Column(db.String(), nullable=True)
    service_job_id = db.Column(db.String(), nullable=True)
    service_job_pull_request = db.Column(db.String(), nullable=True)

    coverage = db.Column(db.Float, nullable=True)
    completed = db.Column(db.Boolean, nullable=False, default=True)

    # Fixed at creation time, never re-resolved. No relationship on purpose.
    previous_build_id = db.Column(db.Integer, db.ForeignKey('build.id', ondelete='SET NULL'), nullable=True)
    previous_coverage = db.Column(db.Float, nullable=True)

    build_started_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    created = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=utcnow)

    def __repr__(self):
        return "<Build(project_id={self.project_id!r}, build_number={self.build_number!r})>".format(self=self)
