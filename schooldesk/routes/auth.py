from datetime import datetime
from flask import Blueprint, request, jsonify, current_app, make_response, g
from flask_jwt_extended import (
    create_access_token, create_refresh_token, jwt_required,
    get_jwt_identity, get_jwt
)
from schooldesk.extensions import db, limiter
from schooldesk.models import User, Role, School, TokenBlocklist
from schooldesk.schemas.auth import LoginRequest, RegisterRequest
from utils.audit import log_event
from utils.decorators import role_required
from utils.errors import validate, ValidationFailed
from utils.permissions import ROLE_PERMISSIONS

auth_bp = Blueprint('auth', __name__)
SCHOOLLESS_ROLES = {"superuser"}


def _claims(user):
    return {"role": user.role_name, "school_id": user.school_id}


def _set_access_cookie(response, token):
    response.set_cookie(
        "access_token_cookie",
        token,
        max_age=int(current_app.config["JWT_ACCESS_TOKEN_EXPIRES"].total_seconds()),
        httponly=True,
        secure=current_app.config["JWT_COOKIE_SECURE"],
        samesite=current_app.config["JWT_COOKIE_SAMESITE"],
        path="/"
    )


@auth_bp.route('/register', methods=['POST'])
@jwt_required()
@role_required("superuser", "admin")
@limiter.limit("5 per minute", override_defaults=False)
def register():
    data = validate(RegisterRequest, request.get_json(silent=True) or {})
    creator = g.current_user
    role_name = data.role.lower()

    if role_name not in ROLE_PERMISSIONS:
        raise ValidationFailed({"role": f"Role '{data.role}' not found"})
    if role_name == "superuser" and creator.role_name != "superuser":
        return jsonify({"error": "Only superusers can create superusers"}), 403
    if User.query.filter_by(username=data.username).first():
        raise ValidationFailed({"username": "Username already exists"})

    # Admins always create users in their own school.
    school_id = data.school_id if creator.role_name == "superuser" else creator.school_id
    if role_name not in SCHOOLLESS_ROLES:
        if not school_id or not db.session.get(School, school_id):
            raise ValidationFailed({"school_id": "School is required for this role"})

    role = Role.query.filter_by(name=role_name).first()
    if role is None:
        role = Role(name=role_name)
        db.session.add(role)

    user = User(username=data.username, email=data.email, role=role,
                school_id=None if role_name in SCHOOLLESS_ROLES else school_id)
    user.set_password(data.password)
    db.session.add(user)
    db.session.commit()

    log_event("USER_CREATED", user_id=creator.id, ip=request.remote_addr,
              description=f"{user.username} ({role_name})")
    return jsonify({
        "message": "User created",
        "user_id": user.id,
        "school_id": user.school_id,
        "role": role_name
    }), 201


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("5 per minute", override_defaults=False)
def login():
    data = validate(LoginRequest, request.get_json(silent=True) or {})
    ip = request.remote_addr

    user = User.query.filter_by(username=data.username, deleted=False).first()
    if not user or not user.check_password(data.password):
        log_event("LOGIN_FAILED", ip=ip, description=f"Failed login attempt for {data.username}")
        return jsonify({"error": "Invalid username or password"}), 401

    access_token = create_access_token(identity=str(user.id), additional_claims=_claims(user))
    refresh_token = create_refresh_token(identity=str(user.id))

    response = make_response(jsonify({
        "message": "Login successful",
        "access_token": access_token,
        "user": user.to_dict(),
    }))
    _set_access_cookie(response, access_token)
    response.set_cookie(
        "refresh_token_cookie",
        refresh_token,
        max_age=int(current_app.config["JWT_REFRESH_TOKEN_EXPIRES"].total_seconds()),
        httponly=True,
        secure=current_app.config["JWT_COOKIE_SECURE"],
        samesite=current_app.config["JWT_COOKIE_SAMESITE"],
        path="/auth/refresh"
    )

    log_event("LOGIN_SUCCESS", user_id=user.id, ip=ip, description=f"{user.username} logged in")
    return response


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def get_current_user():
    user = db.session.get(User, int(get_jwt_identity()))
    if not user or user.deleted:
        return jsonify({"error": "User not found"}), 404

    return jsonify({
        **user.to_dict(),
        "school": user.school.name if user.school else None,
        "permissions": sorted(ROLE_PERMISSIONS.get(user.role_name, ())),
    }), 200


@auth_bp.route('/refresh', methods=['POST'])
@jwt_required(refresh=True, locations=["cookies", "headers"])
def refresh_access_token():
    user = db.session.get(User, int(get_jwt_identity()))
    if not user or user.deleted:
        return jsonify({"error": "User not found"}), 404

    access_token = create_access_token(identity=str(user.id), additional_claims=_claims(user))
    response = make_response(jsonify({"message": "Token refreshed", "access_token": access_token}))
    _set_access_cookie(response, access_token)

    log_event("REFRESH_TOKEN", user_id=user.id, ip=request.remote_addr)
    return response


@auth_bp.route("/logout", methods=["POST"])
@jwt_required()
def logout():
    token = get_jwt()
    user_id = int(get_jwt_identity())

    db.session.add(TokenBlocklist(
        jti=token["jti"],
        token_type=token.get("type", "access"),
        user_id=user_id,
        expires_at=datetime.utcfromtimestamp(token["exp"]),
    ))
    db.session.commit()

    response = make_response(jsonify({"message": "Successfully logged out"}))
    response.delete_cookie("access_token_cookie", path="/")
    response.delete_cookie("refresh_token_cookie", path="/auth/refresh")

    log_event("LOGOUT", user_id=user_id, ip=request.remote_addr)
    return response
