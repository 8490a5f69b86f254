from werkzeug.exceptions import BadRequest, Conflict


# Define custom exception classes inheriting from Werkzeug's HTTP exceptions
class BuildValidationError(BadRequest):
    description = "The build report is invalid or malformed."

class BuildConflictError(Conflict):
    description = "The build could not be created because of concurrent reports for the same project."


# Internal conditions, absorbed before they reach a request
class NoCoverageDataError(Exception):
    """
    None of the build's jobs reported a usable (non-null, non-zero) coverage value.
    """

    def __init__(self, build_id=None):
        self.build_id = build_id
        super().__init__("No coverage data available for build {}".format(build_id))

class DuplicateBuildError(Exception):
    """
    A build insert hit a uniqueness constraint: another request created the
    conflicting build first.
    """

class ProjectCoverageError(Exception):
    """
    Recomputing a project's aggregate coverage failed.
    """

    def __init__(self, project_id, reason=None):
        self.project_id = project_id
        self.reason = reason
        super().__init__("Failed to update coverage for project {}: {}".format(project_id, reason))
