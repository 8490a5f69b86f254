import datetime
import secrets

from covapi.models import Base
from covapi.cov_database import db


def _generate_token():
    return secrets.token_urlsafe(24)


class Project(Base):
    __tablename__ = 'project'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(), nullable=False, unique=True)
    base_url = db.Column(db.String())
    token = db.Column(db.String(), nullable=False, unique=True, default=_generate_token)

    # Rolled up from the latest build; null until a build reports coverage.
    current_coverage = db.Column(db.Float, nullable=True)
    creation_date = db.Column(db.DateTime(timezone=True), default=lambda: datetime.datetime.now(datetime.timezone.utc))

    def __repr__(self):
        return "<Project(name={self.name!r})>".format(self=self)
