"""Routes for the game blueprint."""

from firebase_admin import firestore
from flask import current_app, g, jsonify, request

from matchpoint.auth.decorators import token_required
from matchpoint.core.transactions import TransactionSettings
from matchpoint.errors import PermissionDeniedError, ValidationError
from matchpoint.group import can_manage_games, is_group_member
from matchpoint.utils import get_json_body, json_formdata, raise_form_errors, to_json

from . import bp
from .forms import CapacityForm, GameForm, GameStatusForm, RegistrationForm
from .models import GameFieldsUpdate, GameSubmission
from .priority import PriorityWeights
from .services import (
    cancel_registration,
    create_game,
    delete_game,
    get_game,
    get_user_priority_status,
    list_group_games,
    process_waitlist,
    record_attendance,
    register_participant,
    update_game,
    update_game_capacity,
    update_game_status,
)
from .services.common import game_ref, read_game


def _load_game(db, game_id):
    return read_game(game_ref(db, game_id))


def _require_manager(db, game):
    if not can_manage_games(db, game.get("groupId", ""), g.user_id):
        raise PermissionDeniedError(
            "You don't have permission to manage games in this group."
        )


def _transaction_settings():
    return TransactionSettings.from_config(current_app.config)


@bp.route("", methods=["POST"])
@token_required
def create():
    """Create a one-off game for a group."""
    data = get_json_body()
    form = GameForm(formdata=json_formdata(data))
    if not form.validate_on_submit():
        raise_form_errors(form)

    db = firestore.client()
    if not can_manage_games(db, form.groupId.data, g.user_id):
        raise PermissionDeniedError(
            "You don't have permission to create games in this group."
        )
    game = create_game(db, GameSubmission.from_dict(data), g.user_id)
    return jsonify(to_json(game)), 201


@bp.route("", methods=["GET"])
@token_required
def list_games():
    """List a group's games by scheduled time, optionally filtered by status."""
    group_id = request.args.get("groupId", "")
    if not group_id:
        raise ValidationError("Group ID is required.")

    db = firestore.client()
    if not is_group_member(db, g.user_id, group_id):
        raise PermissionDeniedError("You must be a member of this group.")
    games = list_group_games(db, group_id, status=request.args.get("status") or None)
    return jsonify(to_json(games))


@bp.route("/<string:game_id>", methods=["GET"])
@token_required
def view(game_id):
    """Show a game."""
    db = firestore.client()
    game = get_game(db, game_id)
    if not is_group_member(db, g.user_id, game.get("groupId", "")):
        raise PermissionDeniedError("You must be a member of this group.")
    return jsonify(to_json(game))


@bp.route("/<string:game_id>", methods=["PUT"])
@token_required
def edit(game_id):
    """Edit a game's details; a new cap may promote from the waitlist."""
    data = get_json_body()
    db = firestore.client()
    _require_manager(db, _load_game(db, game_id))

    game, promoted = update_game(
        db,
        game_id,
        GameFieldsUpdate.from_dict(data),
        scheduled_time=data.get("scheduledTime"),
        settings=_transaction_settings(),
    )
    return jsonify(to_json({"game": game, "promoted": promoted}))


@bp.route("/<string:game_id>/status", methods=["PUT"])
@token_required
def set_status(game_id):
    """Start, complete or cancel a game."""
    form = GameStatusForm(formdata=json_formdata(get_json_body()))
    if not form.validate_on_submit():
        raise_form_errors(form)

    db = firestore.client()
    _require_manager(db, _load_game(db, game_id))
    game = update_game_status(
        db, game_id, form.status.data, settings=_transaction_settings()
    )
    current_app.logger.info(f"Game {game_id} set to {form.status.data} by {g.user_id}")
    return jsonify(to_json(game))


@bp.route("/<string:game_id>", methods=["DELETE"])
@token_required
def delete(game_id):
    """Delete a game and its registrations."""
    db = firestore.client()
    _require_manager(db, _load_game(db, game_id))
    removed = delete_game(db, game_id)
    return jsonify(
        {"message": "Game deleted successfully.", "removedParticipants": removed}
    )


@bp.route("/<string:game_id>/participants", methods=["POST"])
@token_required
def register(game_id):
    """Register the caller, or as a manager someone else, for a game."""
    form = RegistrationForm(formdata=json_formdata(get_json_body()))
    if not form.validate_on_submit():
        raise_form_errors(form)

    db = firestore.client()
    game = _load_game(db, game_id)
    user_id = form.userId.data or g.user_id
    is_guest = bool(form.isGuest.data)

    if user_id != g.user_id or is_guest:
        _require_manager(db, game)
    elif not is_group_member(db, g.user_id, game.get("groupId", "")):
        raise PermissionDeniedError("You must be a member of this group to join.")

    result = register_participant(
        db,
        game_id,
        user_id,
        is_guest=is_guest,
        weights=PriorityWeights.from_config(current_app.config),
        settings=_transaction_settings(),
    )
    current_app.logger.info(
        f"Registration for game {game_id} by {g.user_id}: {result.status}"
    )
    return jsonify(result.to_dict()), 201 if result.created else 200


@bp.route("/<string:game_id>/participants/<string:user_id>", methods=["DELETE"])
@token_required
def cancel(game_id, user_id):
    """Cancel a registration; participants may cancel themselves."""
    db = firestore.client()
    game = _load_game(db, game_id)
    if user_id != g.user_id:
        _require_manager(db, game)

    promoted = cancel_registration(
        db, game_id, user_id, settings=_transaction_settings()
    )
    return jsonify({"status": "DECLINED", "promoted": promoted})


@bp.route("/<string:game_id>/capacity", methods=["PUT"])
@token_required
def set_capacity(game_id):
    """Change the participant cap of a game."""
    form = CapacityForm(formdata=json_formdata(get_json_body()))
    if not form.validate_on_submit():
        raise_form_errors(form)

    db = firestore.client()
    _require_manager(db, _load_game(db, game_id))
    promoted = update_game_capacity(
        db, game_id, form.maxParticipants.data, settings=_transaction_settings()
    )
    return jsonify({"maxParticipants": form.maxParticipants.data, "promoted": promoted})


@bp.route("/<string:game_id>/waitlist/process", methods=["POST"])
@token_required
def process(game_id):
    """Fill open spots from the waitlist."""
    db = firestore.client()
    _require_manager(db, _load_game(db, game_id))
    promoted = process_waitlist(db, game_id, settings=_transaction_settings())
    return jsonify({"promoted": promoted})


@bp.route("/<string:game_id>/waitlist/status", methods=["GET"])
@token_required
def waitlist_status(game_id):
    """Where the caller stands on a game's waitlist."""
    db = firestore.client()
    game = _load_game(db, game_id)
    if not is_group_member(db, g.user_id, game.get("groupId", "")):
        raise PermissionDeniedError("You must be a member of this group.")
    return jsonify(to_json(get_user_priority_status(db, game_id, g.user_id)))


@bp.route("/<string:game_id>/attendance", methods=["POST"])
@token_required
def attendance(game_id):
    """Record who showed up and mark the game completed."""
    data = get_json_body()
    attendee_ids = data.get("attendeeIds")
    if attendee_ids is None:
        raise ValidationError("Attendee IDs are required.")

    db = firestore.client()
    _require_manager(db, _load_game(db, game_id))
    record_attendance(db, game_id, attendee_ids)
    return jsonify({"status": "COMPLETED", "attendeeIds": sorted(set(attendee_ids))})
