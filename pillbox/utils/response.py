"""
JSON response envelope shared by all API routes
"""
from flask import jsonify


def success(message, data=None, status=200):
    body = {'status': status, 'success': True, 'message': message}
    if data is not None:
        body['data'] = data
    return jsonify(body), status


def fail(kind):
    """Render an ErrorKind as its stable (status code, message key) pair"""
    status = kind.status_code
    return jsonify({'status': status, 'success': False, 'message': kind.message}), status
