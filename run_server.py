#!/usr/bin/env python3
"""
PR Notifier Local Server

Small Flask server that runs the polling engine and exposes it to a
local UI (menu bar app, browser extension, ...).
"""

import threading
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS

from pr_notifier import __version__
from pr_notifier.api import PRNotifierAPI
from pr_notifier.auth.device_flow import DeviceAuthFlow, DeviceFlowError
from pr_notifier.models.check import CheckError, PRCheckResult
from pr_notifier.models.pull_request import PullRequest


def serialize_pr(pr: PullRequest) -> dict:
    return {
        'id': pr.id,
        'number': pr.number,
        'title': pr.title,
        'html_url': pr.html_url,
        'repo': pr.repo,
        'author_login': pr.author_login,
        'is_authored': pr.is_authored,
        'reviews': [
            {
                'reviewer_login': r.reviewer_login,
                'reviewer_name': r.reviewer_name,
                'state': r.state.value,
            }
            for r in pr.reviews or []
        ],
    }


def serialize_error(error: CheckError) -> dict:
    return {
        'type': error.kind.value,
        'message': error.message,
        'repo_name': error.repo_name,
        'details': error.details,
    }


def serialize_result(result: PRCheckResult) -> dict:
    return {
        'active': [serialize_pr(pr) for pr in result.active_pull_requests],
        'dismissed': [serialize_pr(pr) for pr in result.dismissed_pull_requests],
        'authored': [serialize_pr(pr) for pr in result.authored_pull_requests],
        'errors': [serialize_error(e) for e in result.errors],
        'has_errors': result.has_errors,
        'last_checked': result.checked_at.isoformat() if result.checked_at else None,
    }


def create_app(notifier_api: PRNotifierAPI) -> Flask:
    """Build the Flask app around a running engine."""
    app = Flask(__name__)
    CORS(app)  # Enable CORS for the local UI

    login = {'flow': None}
    login_lock = threading.Lock()

    def current_flow() -> Optional[DeviceAuthFlow]:
        with login_lock:
            return login['flow']

    @app.route('/api/v1/health', methods=['GET'])
    def health_check():
        """Health check endpoint."""
        return jsonify({
            'status': 'healthy',
            'service': 'pr-notifier',
            'version': __version__,
            'polling': notifier_api.scheduler.is_running,
        })

    @app.route('/api/v1/pull-requests', methods=['GET'])
    def list_pull_requests():
        return jsonify(serialize_result(notifier_api.snapshot()))

    @app.route('/api/v1/check', methods=['POST'])
    def check_now():
        result = notifier_api.check_now()
        if result is None:
            return jsonify({'status': 'in_progress'}), 202
        return jsonify(serialize_result(result))

    @app.route('/api/v1/pull-requests/<int:pr_id>/dismiss', methods=['POST'])
    def dismiss(pr_id: int):
        if notifier_api.dismiss(pr_id) is None:
            return jsonify({'error': f'Pull request {pr_id} is not active'}), 404
        return jsonify(serialize_result(notifier_api.snapshot()))

    @app.route('/api/v1/pull-requests/<int:pr_id>/undismiss', methods=['POST'])
    def undismiss(pr_id: int):
        if notifier_api.undismiss(pr_id) is None:
            return jsonify({'error': f'Pull request {pr_id} is not dismissed'}), 404
        return jsonify(serialize_result(notifier_api.snapshot()))

    @app.route('/api/v1/auth/device', methods=['POST'])
    def start_device_login():
        """Request a user code and poll for authorization in the background."""
        flow = notifier_api.create_device_flow()
        with login_lock:
            previous = login['flow']
            login['flow'] = flow
        if previous is not None:
            previous.cancel()

        try:
            grant = flow.request_code()
        except DeviceFlowError as e:
            return jsonify({'state': flow.state.value, 'error': str(e)}), 502

        def wait():
            outcome = flow.wait_for_authorization()
            if outcome.succeeded and current_flow() is flow:
                notifier_api.complete_login(outcome)

        threading.Thread(target=wait, name='pr-notifier-device-flow', daemon=True).start()
        return jsonify({
            'state': flow.state.value,
            'user_code': grant.user_code,
            'verification_uri': grant.verification_uri,
            'expires_in': grant.expires_in,
        })

    @app.route('/api/v1/auth/device', methods=['GET'])
    def device_login_status():
        flow = current_flow()
        if flow is None:
            return jsonify({'state': None})
        outcome = flow.outcome
        return jsonify({
            'state': flow.state.value if flow.state else None,
            'username': outcome.username if outcome else None,
            'message': outcome.message if outcome else None,
            'can_retry': outcome.can_retry if outcome else False,
        })

    @app.route('/api/v1/auth/device', methods=['DELETE'])
    def cancel_device_login():
        flow = current_flow()
        if flow is not None:
            flow.cancel()
        return jsonify({'status': 'cancelled'})

    return app


if __name__ == '__main__':
    notifier_api = PRNotifierAPI()
    notifier_api.start()

    print("Starting PR Notifier server...")
    print("Server will be available at: http://localhost:8000")
    print("API:")
    print("   - Health Check: GET /api/v1/health")
    print("   - Pull Requests: GET /api/v1/pull-requests")
    print("   - Check Now: POST /api/v1/check")
    print("   - Device Login: POST /api/v1/auth/device")

    try:
        create_app(notifier_api).run(
            host='127.0.0.1',
            port=8000,
            debug=notifier_api.config.debug,
            use_reloader=False,
        )
    finally:
        notifier_api.shutdown()
