"""Tests for the Flask admin API."""

import json

import pytest

from autograde.tools.admin_api import create_app


@pytest.fixture
def make_client(sample_config, store, make_gateway):
    def _make(responses=None, configs=None, with_gateway=True):
        app = create_app(
            configs or sample_config,
            submission_store=store,
            model_gateway=make_gateway(responses) if with_gateway else None,
        )
        app.config['TESTING'] = True
        return app.test_client()
    return _make


def test_healthz(make_client):
    response = make_client().get('/healthz')
    assert response.status_code == 200
    assert response.get_json() == {'status': 'ok'}


def test_cors_headers(make_client):
    response = make_client().get('/healthz', headers={'Origin': 'http://localhost:3000'})
    assert response.headers.get('Access-Control-Allow-Origin') in ('*', 'http://localhost:3000')


class TestAutoGradeEndpoint:

    def test_status(self, make_client, store, base_time):
        store.add_submission("sub-1", "task-1", "student-1", content="x")
        store.add_submission("sub-2", "task-1", "student-2", content="x", status="pending_review",
                             needs_review=True, auto_graded_at=base_time)

        response = make_client().get('/api/admin/auto-grade')

        assert response.status_code == 200
        assert response.get_json() == {
            'pendingSubmissions': 1,
            'reviewQueueCount': 1,
            'lastAutoGradedAt': base_time.isoformat(),
            'config': {'bonusThreshold': 70, 'bonusPoints': 5, 'maxScore': 100, 'batchSize': 3},
        }

    def test_status_without_api_key(self, make_client):
        """The status probe works even when no model key is configured."""
        client = make_client(configs={'llm': {'api_key': None}}, with_gateway=False)
        response = client.get('/api/admin/auto-grade')
        assert response.status_code == 200
        assert response.get_json()['pendingSubmissions'] == 0

    def test_run_batch(self, make_client, store):
        store.add_submission("sub-1", "task-1", "student-1", content="print(1)")
        client = make_client(["**Yekun bal: 82/100**"])

        response = client.post('/api/admin/auto-grade', json={'batchSize': 2})

        assert response.status_code == 200
        data = response.get_json()
        assert data['success'] is True
        assert data['message'] == "Processed 1 of 1 submissions"
        assert data['graded'] == 1
        assert data['results'][0]['finalScore'] == 87
        assert data['results'][0]['bonusApplied'] is True

    def test_run_batch_without_body(self, make_client):
        response = make_client().post('/api/admin/auto-grade')
        assert response.status_code == 200
        data = response.get_json()
        assert data['message'] == "No pending submissions to process"
        assert data['processed'] == 0
        assert data['results'] == []

    def test_zero_batch_size_uses_default(self, make_client, store):
        for i in range(4):
            store.add_submission(f"sub-{i}", "task-1", "student-1", content="x")
        client = make_client(["**Yekun bal: 75/100**"] * 3)

        response = client.post('/api/admin/auto-grade', json={'batchSize': 0})

        assert response.status_code == 200
        assert response.get_json()['processed'] == 3
        assert store.count_pending() == 1

    @pytest.mark.parametrize("body", [{'batchSize': -2}, {'batchSize': '3'},
                                      {'batchSize': True}, {'batchSize': 1.5}, [1, 2]])
    def test_run_batch_bad_request(self, make_client, body):
        response = make_client().post('/api/admin/auto-grade', json=body)
        assert response.status_code == 400
        assert 'error' in response.get_json()

    def test_run_batch_without_api_key(self, make_client, store):
        store.add_submission("sub-1", "task-1", "student-1", content="x")
        client = make_client(configs={'llm': {'api_key': None}}, with_gateway=False)

        response = client.post('/api/admin/auto-grade')

        assert response.status_code == 500
        data = response.get_json()
        assert 'api_key' in data['error']
        assert data['results'] == []
        assert store.get_submission("sub-1").status == "submitted"


class TestReviewQueueEndpoint:

    @pytest.fixture
    def flagged(self, store, base_time):
        store.add_submission("sub-1", "task-1", "student-1", content="x", status="pending_review",
                             needs_review=True, ai_score=55, points=55, feedback="AI",
                             auto_graded_at=base_time)
        return store

    def test_list(self, make_client, flagged):
        response = make_client().get('/api/admin/review-queue')

        assert response.status_code == 200
        data = response.get_json()
        assert data['success'] is True
        assert data['count'] == 1
        assert data['submissions'][0]['id'] == "sub-1"
        assert data['submissions'][0]['student']['full_name'] == "Aysel Məmmədova"

    def test_approve(self, make_client, flagged):
        response = make_client().patch('/api/admin/review-queue', json={
            'submissionId': 'sub-1', 'approved': True, 'finalPoints': 65, 'feedback': 'Adjusted',
        })

        assert response.status_code == 200
        data = response.get_json()
        assert data['message'] == 'Submission approved and graded'
        assert data['submission']['status'] == 'graded'
        assert data['submission']['points'] == 65
        assert flagged.count_review_queue() == 0

    def test_reject(self, make_client, flagged):
        response = make_client().patch('/api/admin/review-queue',
                                       json={'submissionId': 'sub-1', 'approved': False})

        assert response.status_code == 200
        data = response.get_json()
        assert data['message'] == 'Submission rejected'
        assert data['submission']['status'] == 'rejected'
        assert data['submission']['points'] == 55

    @pytest.mark.parametrize("body", [
        {'approved': True},
        {'submissionId': 'sub-1'},
        {'submissionId': 'sub-1', 'approved': 'yes'},
        {'submissionId': 'sub-1', 'approved': True, 'finalPoints': 'high'},
    ])
    def test_bad_request(self, make_client, flagged, body):
        response = make_client().patch('/api/admin/review-queue', json=body)
        assert response.status_code == 400
        assert flagged.get_submission("sub-1").needs_review is True

    def test_non_json_body(self, make_client, flagged):
        response = make_client().patch('/api/admin/review-queue', data='not json',
                                       content_type='application/json')
        assert response.status_code == 400

    def test_unknown_submission(self, make_client, flagged):
        response = make_client().patch('/api/admin/review-queue',
                                       json={'submissionId': 'nope', 'approved': True})
        assert response.status_code == 404


def test_response_keeps_unicode(make_client, store, base_time):
    store.add_submission("sub-1", "task-1", "student-2", content="x", status="pending_review",
                         needs_review=True, auto_graded_at=base_time)
    response = make_client().get('/api/admin/review-queue')
    data = json.loads(response.get_data(as_text=True))
    assert data['submissions'][0]['student']['full_name'] == "Rəşad Əliyev"
