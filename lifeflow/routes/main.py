from flask import Blueprint, jsonify
from flask_login import current_user

main = Blueprint('main', __name__)


@main.route('/')
@main.route('/home')
def home():
    return jsonify({
        'name': 'LifeFlow',
        'description': 'Blood donation requests matched by district and blood group',
        'authenticated': current_user.is_authenticated
    })
