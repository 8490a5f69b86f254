from covapi.models import Base
from covapi.models.build import utcnow
from covapi.cov_database import db


class Job(Base):
    __tablename__ = 'job'
    __table_args__ = (
        db.UniqueConstraint('build_id', 'job_number', name='uq_job_build_number'),
    )

    id = db.Column(db.Integer, primary_key=True)
    build_id = db.Column(db.Integer, db.ForeignKey('build.id'), nullable=False, index=True)
    job_number = db.Column(db.Integer, nullable=False)

    # Null until the CI job reports. Zero is treated the same way by the aggregator.
    coverage = db.Column(db.Float, nullable=True)
    service_job_id = db.Column(db.String(), nullable=True)
    run_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    build = db.relationship('Build', backref=db.backref('jobs', lazy='select'))

    def __repr__(self):
        return "<Job(build_id={self.build_id!r}, job_number={self.job_number!r})>".format(self=self)
