from flask import jsonify


def form_errors(form):
    """
    JSON response for a form that failed validation
    """
    return jsonify({'success': False, 'message': 'Validation failed', 'errors': form.errors}), 400
