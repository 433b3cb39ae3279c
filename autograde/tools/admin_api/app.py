"""Flask application exposing the auto-grading and review-queue admin endpoints."""

import logging
from typing import Optional

import httpx
from flask import Flask, jsonify, request
from flask_cors import CORS

from autograde.errors import AutogradeError, ConfigurationError, NotFoundError, ValidationError
from autograde.libs.config_loader import ConfigType
from autograde.libs.submission_store import SubmissionStore
from autograde.tools.auto_grading.auto_grader import AutoGrader, status_report
from autograde.tools.auto_grading.gateway import ModelGateway
from autograde.tools.auto_grading.models import GradingPolicy
from autograde.tools.review_queue import ReviewQueue

LOG = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)

# Global state, wired by create_app
configs: Optional[ConfigType] = None
store: Optional[SubmissionStore] = None
policy: Optional[GradingPolicy] = None
review_queue: Optional[ReviewQueue] = None
gateway: Optional[ModelGateway] = None
http_transport: Optional[httpx.AsyncBaseTransport] = None


def create_app(app_configs: ConfigType,
               submission_store: Optional[SubmissionStore] = None,
               model_gateway: Optional[ModelGateway] = None,
               transport: Optional[httpx.AsyncBaseTransport] = None) -> Flask:
    """
    Create and configure the Flask app.

    Args:
        app_configs: Configuration dictionary
        submission_store: Store to use (built from config when omitted)
        model_gateway: Gateway to use (built from config per run when omitted)
        transport: Transport for fetching uploaded submission files
    """
    global configs, store, policy, review_queue, gateway, http_transport
    configs = app_configs
    store = submission_store or SubmissionStore.from_config(app_configs)
    policy = GradingPolicy.from_config(app_configs)
    review_queue = ReviewQueue(store, page_size=policy.review_page_size)
    gateway = model_gateway
    http_transport = transport

    LOG.info("Flask app created and configured")
    return app


def _build_auto_grader() -> AutoGrader:
    """Fresh grader per run so credential problems surface before any item."""
    return AutoGrader(configs, store, gateway=gateway, policy=policy, http_transport=http_transport)


@app.route('/healthz', methods=['GET'])
def healthz():
    return jsonify({'status': 'ok'})


@app.route('/api/admin/auto-grade', methods=['GET'])
def auto_grade_status():
    """Pending count, review-queue count and active grading config."""
    try:
        return jsonify(status_report(store, policy))
    except AutogradeError as e:
        LOG.error(f"Auto-grade status error: {e}")
        return jsonify({'error': 'Failed to get auto-grading status'}), 500


@app.route('/api/admin/auto-grade', methods=['POST'])
def run_auto_grade():
    """Grade one batch of pending submissions."""
    body = request.get_json(silent=True)
    if body is None:
        body = {}
    if not isinstance(body, dict):
        return jsonify({'error': 'Request body must be a JSON object', 'results': []}), 400

    # 0 or null means the configured batch size
    batch_size = body.get('batchSize') or None
    if batch_size is not None and (isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size < 1):
        return jsonify({'error': "'batchSize' must be a positive integer", 'results': []}), 400

    try:
        grader = _build_auto_grader()
    except ConfigurationError as e:
        LOG.error(f"Auto-grade configuration error: {e}")
        return jsonify({'error': str(e), 'results': []}), 500

    try:
        summary = grader.grade_batch(batch_size)
    except AutogradeError as e:
        LOG.error(f"Auto-grade error: {e}")
        return jsonify({'error': str(e), 'results': []}), 500

    return jsonify(summary.to_dict())


@app.route('/api/admin/review-queue', methods=['GET'])
def get_review_queue():
    """Submissions waiting for an admin decision."""
    try:
        submissions = review_queue.list_flagged()
    except AutogradeError as e:
        LOG.error(f"Review queue fetch error: {e}")
        return jsonify({'error': 'Failed to fetch review queue'}), 500

    return jsonify({
        'success': True,
        'count': len(submissions),
        'submissions': submissions
    })


@app.route('/api/admin/review-queue', methods=['PATCH'])
def update_review_queue():
    """Approve or reject a flagged submission."""
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400

    approved = body.get('approved')
    try:
        submission = review_queue.apply_decision(
            body.get('submissionId'),
            approved,
            final_points=body.get('finalPoints'),
            feedback=body.get('feedback'),
        )
    except ValidationError as e:
        return jsonify({'error': str(e)}), 400
    except NotFoundError as e:
        return jsonify({'error': str(e)}), 404
    except AutogradeError as e:
        LOG.error(f"Review queue update error: {e}")
        return jsonify({'error': 'Failed to update submission'}), 500

    return jsonify({
        'success': True,
        'message': 'Submission approved and graded' if approved else 'Submission rejected',
        'submission': submission
    })


def run_server(host='127.0.0.1', port=5000, debug=False):
    """
    Run the Flask development server.

    Args:
        host: Host to bind to
        port: Port to bind to
        debug: Whether to run in debug mode
    """
    app.run(host=host, port=port, debug=debug)
