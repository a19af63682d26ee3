"""Routes for the recurring series blueprint."""

from firebase_admin import firestore
from flask import current_app, g, jsonify, request

from matchpoint.auth.decorators import token_required
from matchpoint.core.transactions import TransactionSettings
from matchpoint.errors import PermissionDeniedError, ValidationError
from matchpoint.group import can_manage_games, is_group_member
from matchpoint.utils import (
    get_json_body,
    json_formdata,
    parse_bool_arg,
    raise_form_errors,
    to_json,
)

from . import bp
from .forms import GenerateInstancesForm, SeriesForm
from .models import SeriesSubmission, SeriesUpdate
from .services import (
    create_series,
    delete_recurring_series,
    generate_series_instances,
    get_series,
    get_series_instances,
    list_group_series,
    update_future_series_instances,
    update_series,
)


def _require_manager(db, group_id):
    if not can_manage_games(db, group_id, g.user_id):
        raise PermissionDeniedError(
            "You don't have permission to manage games in this group."
        )


def _require_member(db, group_id):
    if not is_group_member(db, g.user_id, group_id):
        raise PermissionDeniedError("You must be a member of this group.")


@bp.route("", methods=["POST"])
@token_required
def create():
    """Create a recurring series for a group."""
    data = get_json_body()
    form = SeriesForm(formdata=json_formdata(data))
    if not form.validate_on_submit():
        raise_form_errors(form)

    db = firestore.client()
    _require_manager(db, form.groupId.data)
    series = create_series(db, SeriesSubmission.from_dict(data), g.user_id)
    return jsonify(to_json(series)), 201


@bp.route("", methods=["GET"])
@token_required
def list_series():
    """List a group's recurring series, newest first."""
    group_id = request.args.get("groupId", "")
    if not group_id:
        raise ValidationError("Group ID is required.")

    db = firestore.client()
    _require_member(db, group_id)
    return jsonify(to_json(list_group_series(db, group_id)))


@bp.route("/<string:series_id>", methods=["GET"])
@token_required
def view(series_id):
    """Show a series, optionally with its instances."""
    db = firestore.client()
    series = get_series(db, series_id)
    _require_member(db, series.get("groupId", ""))

    response = {"series": series}
    if parse_bool_arg("includeInstances"):
        response["instances"] = get_series_instances(
            db,
            series_id,
            include_completed=parse_bool_arg("includeCompleted"),
            limit=current_app.config["SERIES_INSTANCE_LIMIT"],
        )
    return jsonify(to_json(response))


@bp.route("/<string:series_id>", methods=["PUT"])
@token_required
def edit(series_id):
    """Update a series and, on request, its upcoming instances."""
    db = firestore.client()
    series = get_series(db, series_id)
    _require_manager(db, series.get("groupId", ""))

    update = SeriesUpdate.from_dict(get_json_body())
    series = update_series(db, series_id, update)

    updated_instances = 0
    if parse_bool_arg("updateInstances"):
        updated_instances = update_future_series_instances(
            db,
            series_id,
            update.game_fields(),
            settings=TransactionSettings.from_config(current_app.config),
        )
    return jsonify(
        to_json({"series": series, "updatedInstances": updated_instances})
    )


@bp.route("/<string:series_id>", methods=["DELETE"])
@token_required
def delete(series_id):
    """Delete a series, and on request its upcoming instances."""
    db = firestore.client()
    series = get_series(db, series_id)
    _require_manager(db, series.get("groupId", ""))

    deleted = delete_recurring_series(
        db, series_id, cascade_delete_instances=parse_bool_arg("deleteInstances")
    )
    current_app.logger.info(
        f"Series {series_id} deleted by {g.user_id} ({deleted} instance(s))."
    )
    return jsonify({"deletedInstances": deleted})


@bp.route("/<string:series_id>/instances", methods=["POST"])
@token_required
def generate(series_id):
    """Generate the games of a series for a date range."""
    data = get_json_body()
    form = GenerateInstancesForm(formdata=json_formdata(data))
    if not form.validate_on_submit():
        raise_form_errors(form)

    db = firestore.client()
    series = get_series(db, series_id)
    _require_manager(db, series.get("groupId", ""))

    instances = generate_series_instances(
        db,
        series_id,
        form.startDate.data,
        form.endDate.data,
        g.user_id,
        template_game=data.get("templateGame"),
    )
    return (
        jsonify(
            to_json(
                {
                    "message": f"{len(instances)} game instances generated.",
                    "instances": instances,
                }
            )
        ),
        201,
    )
