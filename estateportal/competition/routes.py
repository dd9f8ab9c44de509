"""Routes for the competition blueprint."""

from __future__ import annotations

import datetime
from typing import Any

from flask import (
    current_app,
    flash,
    g,
    jsonify,
    redirect,
    render_template,
    request,
    url_for,
)

from estateportal.auth.decorators import login_required
from estateportal.auth.permissions import Permissions
from estateportal.core.constants import FORMAT_KNOCKOUT, MIN_BRACKET_PARTICIPANTS
from estateportal.errors import AppError, NotFoundError, PersistenceError

from . import bp
from .forms import (
    CompetitionForm,
    MatchForm,
    MatchResultForm,
    RefereeForm,
    StatusForm,
    TeamForm,
    TeamMemberForm,
)
from .services import CompetitionService
from .utils import bracket_payload, group_matches_by_round


def _permissions() -> Permissions:
    return Permissions.from_user(g.user)


def _back(competition_id: str) -> Any:
    return redirect(url_for(".view_competition", competition_id=competition_id))


def _flash_form_errors(form: Any) -> None:
    for field, errors in form.errors.items():
        for error in errors:
            flash(f"{getattr(form, field).label.text}: {error}", "danger")


def _flash_error(e: AppError) -> None:
    if isinstance(e, PersistenceError):
        current_app.logger.error(
            f"Persistence error at stage {e.stage} "
            f"(old matches removed: {e.old_matches_removed}): {e.message}"
        )
    else:
        current_app.logger.warning(f"Competition action rejected: {e.message}")
    flash(e.message, "danger")


@bp.route("/", methods=["GET"])
@login_required
def list_competitions() -> Any:
    """List all competitions, optionally filtered by event."""
    event_id = request.args.get("event_id")
    competitions = CompetitionService.list_competitions(event_id)
    return render_template(
        "competition/list.html",
        competitions=competitions,
        can_manage=_permissions().can_manage_content(),
    )


@bp.route("/create", methods=["GET", "POST"])
@login_required
def create_competition() -> Any:
    """Create a new competition."""
    form = CompetitionForm()
    if form.validate_on_submit():
        data = dict(form.data)
        data.pop("csrf_token", None)
        deadline = data.get("registration_deadline")
        if deadline:
            data["registration_deadline"] = datetime.datetime.combine(
                deadline, datetime.time.min
            )
        try:
            competition_id = CompetitionService.create_competition(
                data, _permissions()
            )
            flash("Competition created successfully.", "success")
            return _back(competition_id)
        except AppError as e:
            _flash_error(e)

    return render_template("competition/create.html", form=form)


@bp.route("/<string:competition_id>", methods=["GET"])
@login_required
def view_competition(competition_id: str) -> Any:
    """View a competition with its bracket, teams and referees."""
    try:
        competition = CompetitionService.get_competition_details(competition_id)
    except NotFoundError as e:
        flash(e.message, "danger")
        return redirect(url_for(".list_competitions"))

    permissions = _permissions()
    referee_ids = [r.get("user_id") for r in competition["referees"]]
    can_manage = permissions.can_manage_content()
    can_generate_bracket = (
        can_manage
        and competition.get("format") == FORMAT_KNOCKOUT
        and len(competition["teams"]) >= MIN_BRACKET_PARTICIPANTS
    )

    return render_template(
        "competition/view.html",
        competition=competition,
        rounds=group_matches_by_round(competition["matches"]),
        can_manage=can_manage,
        can_modify_matches=permissions.can_modify_matches(referee_ids),
        can_generate_bracket=can_generate_bracket,
        status_form=StatusForm(status=competition.get("status")),
        team_form=TeamForm(),
        member_form=TeamMemberForm(),
        referee_form=RefereeForm(),
        match_form=MatchForm(),
        result_form=MatchResultForm(),
    )


@bp.route("/<string:competition_id>/bracket.json", methods=["GET"])
@login_required
def bracket_json(competition_id: str) -> Any:
    """Return the bracket of a competition as JSON."""
    try:
        competition = CompetitionService.get_competition_details(competition_id)
    except NotFoundError as e:
        return jsonify({"status": "error", "message": e.message}), 404
    return jsonify(bracket_payload(competition))


@bp.route("/<string:competition_id>/status", methods=["POST"])
@login_required
def update_status(competition_id: str) -> Any:
    """Move a competition to another status."""
    form = StatusForm()
    if not form.validate_on_submit():
        _flash_form_errors(form)
        return _back(competition_id)
    try:
        CompetitionService.update_competition(
            competition_id, {"status": form.status.data}, _permissions()
        )
        flash("Competition updated successfully.", "success")
    except AppError as e:
        _flash_error(e)
    return _back(competition_id)


@bp.route("/<string:competition_id>/delete", methods=["POST"])
@login_required
def delete_competition(competition_id: str) -> Any:
    """Delete a competition and everything attached to it."""
    try:
        CompetitionService.delete_competition(competition_id, _permissions())
        flash("Competition deleted.", "success")
        return redirect(url_for(".list_competitions"))
    except AppError as e:
        _flash_error(e)
    return _back(competition_id)


@bp.route("/<string:competition_id>/teams", methods=["POST"])
@login_required
def add_team(competition_id: str) -> Any:
    """Register a team."""
    form = TeamForm()
    if not form.validate_on_submit():
        _flash_form_errors(form)
        return _back(competition_id)
    try:
        CompetitionService.add_team(
            competition_id,
            {
                "name": form.name.data,
                "house_id": form.house_id.data,
                "logo_url": form.logo_url.data,
                "seed_number": form.seed_number.data,
            },
            _permissions(),
        )
        flash("Team added successfully.", "success")
    except AppError as e:
        _flash_error(e)
    return _back(competition_id)


@bp.route("/<string:competition_id>/teams/<string:team_id>/delete", methods=["POST"])
@login_required
def delete_team(competition_id: str, team_id: str) -> Any:
    """Remove a team."""
    try:
        CompetitionService.delete_team(competition_id, team_id, _permissions())
        flash("Team removed.", "success")
    except AppError as e:
        _flash_error(e)
    return _back(competition_id)


@bp.route("/<string:competition_id>/teams/<string:team_id>/members", methods=["POST"])
@login_required
def add_team_member(competition_id: str, team_id: str) -> Any:
    """Add a resident to a team."""
    form = TeamMemberForm()
    if not form.validate_on_submit():
        _flash_form_errors(form)
        return _back(competition_id)
    try:
        CompetitionService.add_team_member(
            competition_id,
            team_id,
            form.user_id.data,
            _permissions(),
            is_captain=form.is_captain.data,
        )
        flash("Member added successfully.", "success")
    except AppError as e:
        _flash_error(e)
    return _back(competition_id)


@bp.route(
    "/<string:competition_id>/members/<string:member_id>/delete", methods=["POST"]
)
@login_required
def remove_team_member(competition_id: str, member_id: str) -> Any:
    """Remove a resident from a team."""
    try:
        CompetitionService.remove_team_member(
            competition_id, member_id, _permissions()
        )
        flash("Member removed.", "success")
    except AppError as e:
        _flash_error(e)
    return _back(competition_id)


@bp.route("/<string:competition_id>/referees", methods=["POST"])
@login_required
def assign_referee(competition_id: str) -> Any:
    """Assign a referee."""
    form = RefereeForm()
    if not form.validate_on_submit():
        _flash_form_errors(form)
        return _back(competition_id)
    try:
        CompetitionService.assign_referee(
            competition_id, form.user_id.data, _permissions()
        )
        flash("Referee assigned successfully.", "success")
    except AppError as e:
        _flash_error(e)
    return _back(competition_id)


@bp.route(
    "/<string:competition_id>/referees/<string:referee_id>/delete", methods=["POST"]
)
@login_required
def remove_referee(competition_id: str, referee_id: str) -> Any:
    """Remove a referee."""
    try:
        CompetitionService.remove_referee(competition_id, referee_id, _permissions())
        flash("Referee removed.", "success")
    except AppError as e:
        _flash_error(e)
    return _back(competition_id)


@bp.route("/<string:competition_id>/bracket", methods=["POST"])
@login_required
def generate_bracket(competition_id: str) -> Any:
    """Generate (or regenerate) the knockout bracket."""
    try:
        matches = CompetitionService.generate_bracket(
            competition_id,
            _permissions(),
            auto_advance_byes=current_app.config.get("BRACKET_AUTO_ADVANCE_BYES", False),
            batch_limit=current_app.config["FIRESTORE_BATCH_LIMIT"],
        )
        flash(f"Bracket generated with {len(matches)} matches.", "success")
    except AppError as e:
        _flash_error(e)
    return _back(competition_id)


@bp.route("/<string:competition_id>/matches", methods=["POST"])
@login_required
def create_match(competition_id: str) -> Any:
    """Schedule a match by hand."""
    form = MatchForm()
    if not form.validate_on_submit():
        _flash_form_errors(form)
        return _back(competition_id)
    data = dict(form.data)
    data.pop("csrf_token", None)
    try:
        CompetitionService.create_match(competition_id, data, _permissions())
        flash("Match created successfully.", "success")
    except AppError as e:
        _flash_error(e)
    return _back(competition_id)


@bp.route("/<string:competition_id>/matches/<string:match_id>", methods=["POST"])
@login_required
def update_match(competition_id: str, match_id: str) -> Any:
    """Record the result or details of a match."""
    form = MatchResultForm()
    if not form.validate_on_submit():
        _flash_form_errors(form)
        return _back(competition_id)
    # Fields the page did not post keep their stored values.
    data = {
        k: v
        for k, v in form.data.items()
        if k in request.form and k != "csrf_token"
    }
    try:
        CompetitionService.update_match(competition_id, match_id, data, _permissions())
        flash("Match updated successfully.", "success")
    except AppError as e:
        _flash_error(e)
    return _back(competition_id)


@bp.route(
    "/<string:competition_id>/matches/<string:match_id>/delete", methods=["POST"]
)
@login_required
def delete_match(competition_id: str, match_id: str) -> Any:
    """Delete a match."""
    try:
        CompetitionService.delete_match(competition_id, match_id, _permissions())
        flash("Match deleted.", "success")
    except AppError as e:
        _flash_error(e)
    return _back(competition_id)
