import unittest
import json
from unittest.mock import patch
from covapi.covapp import app
from covapi.cov_database import db
from covapi.models import Base, initialize_sql
from covapi.models.build import Build
from covapi.models.project import Project
from covapi.utils.build_store import SqlBuildStore


class TestBuildEndpoints(unittest.TestCase):
    """
    Test suite for project and build endpoints
    Tests build ingestion, job reporting, completion and coverage roll-up
    """

    def setUp(self):
        """Set up test environment before each test."""
        with app.app_context():
            initialize_sql(db.engine)
        self.client = app.test_client()

    def tearDown(self):
        """Clean up after each test."""
        with app.app_context():
            db.session.remove()
            Base.metadata.drop_all(db.engine)

    def _create_project(self, name='demo'):
        response = self.client.post('/api/projects', data=json.dumps({'name': name}), content_type='application/json')
        self.assertEqual(response.status_code, 201)
        return json.loads(response.data)

    def _report(self, project_id, branch='main', sha='abc123', **extra):
        payload = {
            'service_name': 'travis-ci',
            'git': {
                'branch': branch,
                'head': {'id': sha, 'committer_name': ' Jane Doe ', 'message': 'Fix build'}
            }
        }
        payload.update(extra)
        return self.client.post(f'/api/projects/{project_id}/builds', data=json.dumps(payload),
                                content_type='application/json')

    def _add_job(self, build_id, coverage):
        return self.client.post(f'/api/builds/{build_id}/jobs', data=json.dumps({'coverage': coverage}),
                                content_type='application/json')

    def test_create_project(self):
        project = self._create_project()
        self.assertEqual(project['name'], 'demo')
        self.assertIsNone(project['current_coverage'])
        self.assertTrue(project['token'])

        response = self.client.get(f"/api/projects/{project['id']}")
        self.assertEqual(response.status_code, 200)
        self.assertNotIn('token', json.loads(response.data))

    def test_create_project_requires_name(self):
        response = self.client.post('/api/projects', data=json.dumps({}), content_type='application/json')
        self.assertEqual(response.status_code, 400)
        data = json.loads(response.data)
        self.assertIn('name', data['message'])
        self.assertEqual(data['code'], 400)

    def test_create_duplicate_project(self):
        self._create_project()
        response = self.client.post('/api/projects', data=json.dumps({'name': 'demo'}), content_type='application/json')
        self.assertEqual(response.status_code, 409)

    def test_report_creates_build(self):
        project = self._create_project()

        response = self._report(project['id'])

        self.assertEqual(response.status_code, 201)
        build = json.loads(response.data)
        self.assertEqual(build['build_number'], 1)
        self.assertEqual(build['branch'], 'main')
        self.assertEqual(build['commit_sha'], 'abc123')
        self.assertEqual(build['committer_name'], 'Jane Doe')
        self.assertEqual(build['project_id'], project['id'])
        self.assertTrue(build['completed'])
        self.assertIsNone(build['previous_build_id'])
        self.assertIsNone(build['coverage_diff'])

    def test_report_for_same_commit_reuses_build(self):
        project = self._create_project()
        first = json.loads(self._report(project['id']).data)

        response = self._report(project['id'])

        self.assertEqual(response.status_code, 200)
        self.assertEqual(json.loads(response.data)['id'], first['id'])

    def test_report_for_unknown_project(self):
        response = self._report(12345)
        self.assertEqual(response.status_code, 404)
        self.assertIn('No project found', json.loads(response.data)['message'])

    def test_invalid_report(self):
        project = self._create_project()
        response = self.client.post(f"/api/projects/{project['id']}/builds",
                                    data=json.dumps({'git': {'branch': 42.5, 'head': 'abc'}}),
                                    content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_jobs_roll_up_to_build_and_project(self):
        project = self._create_project()
        build = json.loads(self._report(project['id']).data)

        self.assertEqual(self._add_job(build['id'], 80.0).status_code, 201)
        self.assertEqual(self._add_job(build['id'], 90.0).status_code, 201)
        response = self._add_job(build['id'], 70.0)

        self.assertEqual(response.status_code, 201)
        data = json.loads(response.data)
        self.assertEqual(data['job']['job_number'], 3)
        self.assertEqual(data['build']['coverage'], 70.0)
        self.assertEqual(len(data['build']['jobs']), 3)

        project = json.loads(self.client.get(f"/api/projects/{project['id']}").data)
        self.assertEqual(project['current_coverage'], 70.0)

    def test_job_without_usable_coverage_leaves_build_unset(self):
        project = self._create_project()
        build = json.loads(self._report(project['id']).data)

        data = json.loads(self._add_job(build['id'], 0).data)

        self.assertIsNone(data['build']['coverage'])

    def test_invalid_job_coverage(self):
        project = self._create_project()
        build = json.loads(self._report(project['id']).data)
        self.assertEqual(self._add_job(build['id'], 150).status_code, 400)

    def test_next_build_links_previous_and_reports_diff(self):
        project = self._create_project()
        first = json.loads(self._report(project['id'], sha='a1').data)
        self._add_job(first['id'], 75.0)

        second = json.loads(self._report(project['id'], sha='a2').data)
        self.assertEqual(second['build_number'], 2)
        self.assertEqual(second['previous_build_id'], first['id'])
        self.assertEqual(second['previous_coverage'], 75.0)

        data = json.loads(self._add_job(second['id'], 80.0).data)
        self.assertEqual(data['build']['coverage_diff'], 5.0)

        other = json.loads(self._report(project['id'], branch='feature', sha='f1').data)
        self.assertEqual(other['build_number'], 3)
        self.assertIsNone(other['previous_build_id'])

    def test_parallel_build_stays_open_until_completed(self):
        project = self._create_project()
        build = json.loads(self._report(project['id'], parallel=True).data)
        self.assertFalse(build['completed'])

        response = self._report(project['id'], branch='feature', sha='other')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(json.loads(response.data)['id'], build['id'])

        self._add_job(build['id'], 66.0)
        response = self.client.post(f"/api/builds/{build['id']}/complete")
        self.assertEqual(response.status_code, 200)
        data = json.loads(response.data)
        self.assertTrue(data['completed'])
        self.assertEqual(data['coverage'], 66.0)

        response = self._report(project['id'], branch='feature', sha='other')
        self.assertEqual(response.status_code, 201)

    def test_get_build(self):
        project = self._create_project()
        build = json.loads(self._report(project['id']).data)
        self._add_job(build['id'], 55.5)

        response = self.client.get(f"/api/builds/{build['id']}")

        self.assertEqual(response.status_code, 200)
        data = json.loads(response.data)
        self.assertEqual(data['coverage'], 55.5)
        self.assertEqual(data['jobs'][0]['coverage'], 55.5)

    def test_get_missing_build(self):
        response = self.client.get('/api/builds/999')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(json.loads(response.data)['code'], 404)

    def test_list_builds_newest_first(self):
        project = self._create_project()
        for sha in ('a1', 'a2', 'a3'):
            self._report(project['id'], sha=sha)

        response = self.client.get(f"/api/projects/{project['id']}/builds?per_page=2")

        self.assertEqual(response.status_code, 200)
        data = json.loads(response.data)
        self.assertEqual(data['total'], 3)
        self.assertEqual([b['build_number'] for b in data['builds']], [3, 2])

        response = self.client.get(f"/api/projects/{project['id']}/builds?page=2&per_page=2")
        self.assertEqual([b['build_number'] for b in json.loads(response.data)['builds']], [1])

    def test_list_builds_bad_paging(self):
        project = self._create_project()
        response = self.client.get(f"/api/projects/{project['id']}/builds?page=abc")
        self.assertEqual(response.status_code, 400)

    @patch('covapi.utils.project_util.update_project_coverage')
    def test_cascade_failure_does_not_fail_job_report(self, mock_update):
        from covapi.utils.errors import ProjectCoverageError
        mock_update.side_effect = ProjectCoverageError(1, 'database unavailable')
        project = self._create_project()
        build = json.loads(self._report(project['id']).data)

        with patch('covapi.utils.project_util.time.sleep'):
            response = self._add_job(build['id'], 42.0)

        self.assertEqual(response.status_code, 201)
        self.assertEqual(json.loads(response.data)['build']['coverage'], 42.0)
        with app.app_context():
            self.assertEqual(db.session.get(Build, build['id']).coverage, 42.0)
            self.assertIsNone(db.session.get(Project, project['id']).current_coverage)

    def test_project_update_is_retried_after_database_error(self):
        project = self._create_project()
        build = json.loads(self._report(project['id']).data)
        save = SqlBuildStore.save_project_coverage
        calls = []

        def fail_first(store, project_row, coverage):
            calls.append(coverage)
            if len(calls) == 1:
                # Duplicate token violates the project table's unique constraint
                db.session.add(Project(name='clash', token=project_row.token))
                db.session.flush()
            return save(store, project_row, coverage)

        with patch.object(SqlBuildStore, 'save_project_coverage', autospec=True, side_effect=fail_first), \
                patch('covapi.utils.project_util.time.sleep'):
            response = self._add_job(build['id'], 42.0)

        self.assertEqual(response.status_code, 201)
        self.assertEqual(calls, [42.0, 42.0])
        with app.app_context():
            self.assertEqual(db.session.get(Build, build['id']).coverage, 42.0)
            self.assertEqual(db.session.get(Project, project['id']).current_coverage, 42.0)
            self.assertIsNone(db.session.query(Project).filter_by(name='clash').first())


if __name__ == '__main__':
    unittest.main()
