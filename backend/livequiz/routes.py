import re

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from livequiz import db
from livequiz.models import ROLE_ADMIN, ROLE_STUDENT, User

auth = Blueprint('auth', __name__)

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


@auth.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    if not 3 <= len(username) <= 20:
        return jsonify({'error': 'Username must be 3-20 characters'}), 400
    if not EMAIL_RE.match(email):
        return jsonify({'error': 'Invalid email address'}), 400
    if len(password) < 6:
        return jsonify({'error': 'Password must be at least 6 characters'}), 400

    role = ROLE_STUDENT
    admin_key = data.get('adminKey')
    if admin_key is not None:
        expected = current_app.config.get('ADMIN_KEY')
        if not expected or admin_key != expected:
            return jsonify({'error': 'Invalid admin key'}), 403
        role = ROLE_ADMIN

    if User.query.filter_by(username=username).first():
        return jsonify({'error': 'Username already exists'}), 400
    if User.query.filter_by(email=email).first():
        return jsonify({'error': 'Email already registered'}), 400

    user = User(username=username, email=email, role=role)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    login_user(user)
    return jsonify({'success': True, 'user': user.to_dict()}), 201


@auth.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    ident = data.get('email') or data.get('username')
    user = None
    if ident:
        user = User.query.filter((User.email == ident.lower()) | (User.username == ident)).first()
    if user and user.check_password(data.get('password') or ''):
        login_user(user, remember=True)
        return jsonify({'success': True, 'user': user.to_dict()})
    return jsonify({'error': 'Invalid credentials'}), 401


@auth.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True})


@auth.route('/me')
@login_required
def me():
    return jsonify({'success': True, 'user': current_user.to_dict()})
