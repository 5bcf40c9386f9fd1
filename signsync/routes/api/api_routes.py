import os
import time

import psutil
from flask import jsonify, request, abort, current_app

from signsync.services.utils import TimeUtils


def init_api_routes(api_bp, services):
    change_log = services.get('change_log')
    fingerprint_service = services.get('fingerprint_service')
    stream_service = services.get('stream_service')
    announcer = services.get('announcer')
    hub = services.get('hub')
    started_at = time.time()
    process = psutil.Process(os.getpid())

    def _int_arg(name: str, default: int) -> int:
        value = request.args.get(name)
        if value is None or value == '':
            return default
        try:
            return int(value)
        except ValueError:
            abort(400, description=f"Query parameter '{name}' must be an integer")

    # ======================
    # Change Log (/api/change-events)
    # ======================
    @api_bp.route('/change-events', methods=['GET'])
    def get_change_events():
        since = _int_arg('since', 0)
        return jsonify([event.to_dict() for event in change_log.read_since(since)])

    @api_bp.route('/change-events', methods=['DELETE'])
    def clear_change_events():
        change_log.clear()
        return jsonify({'success': True})

    # ======================
    # Screen Content (/api/content-status, /api/stream)
    # ======================
    @api_bp.route('/content-status/<screen_id>', methods=['GET'])
    def get_content_status(screen_id):
        return jsonify(fingerprint_service.get_content_status(screen_id))

    @api_bp.route('/stream/<screen_id>', methods=['GET'])
    def get_stream(screen_id):
        index = _int_arg('index', 0)
        return jsonify(stream_service.get_stream(screen_id, index))

    # ======================
    # Announcements (/api/announce, /api/screens)
    # ======================
    @api_bp.route('/announce', methods=['POST'])
    def announce():
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not data.get('kind'):
            abort(400, description="Field 'kind' is required")

        payload = data.get('payload') or {}
        if not isinstance(payload, dict):
            abort(400, description="Field 'payload' must be an object")

        try:
            result = announcer.announce(data['kind'], payload)
        except ValueError as e:
            abort(400, description=str(e))
        return jsonify({'success': True, **result})

    @api_bp.route('/screens/<screen_id>/refresh', methods=['POST'])
    def refresh_screen(screen_id):
        data = request.get_json(silent=True) or {}
        result = hub.notify_screen_refresh(screen_id, data.get('screenName'))
        return jsonify({
            'success': True,
            'screenId': screen_id,
            'connected': result['screenCount'] > 0,
            **result
        })

    # ======================
    # Monitoring (/api/ws/stats, /api/health)
    # ======================
    @api_bp.route('/ws/stats', methods=['GET'])
    def get_ws_stats():
        return jsonify(hub.get_stats())

    @api_bp.route('/health', methods=['GET'])
    def health():
        try:
            process_info = {
                'rss': process.memory_info().rss,
                'cpu': process.cpu_percent(interval=None)
            }
        except psutil.Error as e:
            current_app.logger.warning(f"Process stats unavailable: {str(e)}")
            process_info = {}
        return jsonify({
            'status': 'ok',
            'uptime': int(time.time() - started_at),
            'timestamp': TimeUtils.now_ms(),
            'connections': hub.get_stats(),
            'process': process_info
        })
