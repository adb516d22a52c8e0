from __future__ import annotations

from flask import Blueprint, current_app
from flask_login import current_user

from ..errors import ValidationError
from ..forms import ParticipantForm, SurveyForm
from ..models import DRAW_COMPLETED
from ..policies import AdminRequiredMixin, LoginRequiredMixin, SelfOnlyMixin
from ..services import participants as participant_service
from ..services import surveys as survey_service
from ..services.assignments import get_my_recipient
from ..services.draw import assigned_giver_ids, current_draw, perform_draw, reset_draw
from .envelope import fail, isoformat, ok

api_bp = Blueprint("api", __name__)

ANSWER_KEYS = {
    "gustos_actuales": "gustosActuales",
    "color_favorito": "colorFavorito",
    "tipo_regalo": "tipoRegalo",
    "quiere_probar": "quiereProbar",
    "talla_ropa": "tallaRopa",
}


def _camel_answers(answers: dict[str, str]) -> dict[str, str]:
    return {ANSWER_KEYS[k]: v for k, v in answers.items()}


def _draw_summary(draw, total: int | None = None) -> dict:
    summary = {
        "id": draw.id,
        "estado": "completado" if draw.status == DRAW_COMPLETED else "pendiente",
        "fecha": isoformat(draw.completed_at or draw.created_at),
    }
    if total is not None:
        summary["totalParticipantes"] = total
    return summary


def _participant_json(p, has_assignment: bool | None = None) -> dict:
    data = {
        "id": p.id,
        "nombreCompleto": p.name,
        "numeroTelefono": p.phone,
        "esAdmin": p.is_admin,
        "activo": p.is_active,
        "encuestaCompletada": p.survey_completed,
        "createdAt": isoformat(p.created_at),
    }
    if has_assignment is not None:
        data["tieneAmigoSecreto"] = has_assignment
    return data


def _form_errors(form) -> ValidationError:
    return ValidationError("Datos inválidos", fields={k: list(v) for k, v in form.errors.items()})


class ParticipantsView(AdminRequiredMixin):
    def get(self):
        draw = current_draw()
        people = participant_service.list_active()
        assigned = assigned_giver_ids()
        return ok(
            data=[_participant_json(p, p.id in assigned) for p in people],
            total=len(people),
            sorteo=_draw_summary(draw, total=len(assigned)),
        )

    def post(self):
        form = ParticipantForm()
        if not form.validate_on_submit():
            raise _form_errors(form)
        p = participant_service.register(
            form.nombreCompleto.data,
            form.numeroTelefono.data,
            is_admin=form.esAdmin.data,
        )
        return ok(data=_participant_json(p), message="Participante registrado", status=201)


class ParticipantDetailView(AdminRequiredMixin):
    def delete(self, participant_id: int):
        p = participant_service.deactivate(participant_id)
        return ok(data=_participant_json(p), message="Participante desactivado")


class DrawView(AdminRequiredMixin):
    def post(self):
        result = perform_draw()
        givers = {row.giver_id for row in result.assignments}
        # Never the recipients, only who got one.
        data = [
            {
                "participante": p.id,
                "nombreParticipante": p.name,
                "tieneAmigoSecreto": p.id in givers,
            }
            for p in participant_service.list_active()
        ]
        return ok(
            data=data,
            message="¡Sorteo realizado exitosamente!",
            total=len(result.assignments),
            sorteo=_draw_summary(result.draw),
        )


class DrawResetView(AdminRequiredMixin):
    def delete(self):
        result = reset_draw()
        message = (
            "Sorteo reseteado exitosamente"
            if result.assignments_removed
            else "No había ningún sorteo que resetear"
        )
        return ok(
            data={
                "participantesLimpiados": result.participants_cleared,
                "sorteosEliminados": result.assignments_removed,
            },
            message=message,
        )


class MyRecipientView(SelfOnlyMixin):
    def get(self, user_id: int):
        recipient = get_my_recipient(user_id)
        if recipient is None:
            return fail("El sorteo aún no se ha realizado")
        return ok(
            data={
                "tuNombre": current_user.name,
                "amigoSecreto": {
                    "id": recipient.id,
                    "name": recipient.name,
                    "phone": recipient.phone,
                },
            }
        )


class SurveyView(LoginRequiredMixin):
    def post(self):
        form = SurveyForm()
        if not form.validate_on_submit():
            raise _form_errors(form)
        if form.userId.data != current_user.id:
            return fail("No autorizado", status=403)

        response = survey_service.submit(current_user.id, form.answers())
        data = {"userId": current_user.id, **_camel_answers(response.answers())}
        data["createdAt"] = isoformat(response.completed_at)
        return ok(data=data, message="¡Encuesta enviada exitosamente!")


class SurveyVerifyView(SelfOnlyMixin):
    def get(self, user_id: int):
        status = survey_service.verify(user_id)
        data = {"completada": status.completed}
        if status.completed:
            data["fechaCompletada"] = isoformat(status.completed_at)
            data["respuestas"] = _camel_answers(status.answers)
        return ok(data=data)


class RecipientSurveyView(SelfOnlyMixin):
    def get(self, user_id: int):
        found = survey_service.get_recipient_survey(user_id)
        if found is None:
            current_app.logger.debug("No recipient survey available for participant %s", user_id)
            return fail("Tu amigo secreto aún no ha completado la encuesta")
        recipient, response = found
        data = {"nombreCompleto": recipient.name, **_camel_answers(response.answers())}
        data["fechaCompletada"] = isoformat(response.completed_at)
        return ok(data=data)


# Register routes
participants_view = ParticipantsView.as_view("participants")
api_bp.add_url_rule("/participants", view_func=participants_view, methods=["GET", "POST"])
# Spanish path used by the web client
api_bp.add_url_rule("/participantes", endpoint="participantes", view_func=participants_view, methods=["GET", "POST"])
api_bp.add_url_rule(
    "/participants/<int:participant_id>",
    view_func=ParticipantDetailView.as_view("participant_detail"),
    methods=["DELETE"],
)

api_bp.add_url_rule("/sorteo", view_func=DrawView.as_view("sorteo"), methods=["POST"])
api_bp.add_url_rule("/sorteo/reset", view_func=DrawResetView.as_view("sorteo_reset"), methods=["DELETE"])

api_bp.add_url_rule("/mi-amigo-secreto/<int:user_id>", view_func=MyRecipientView.as_view("mi_amigo_secreto"))

api_bp.add_url_rule("/encuesta", view_func=SurveyView.as_view("encuesta"), methods=["POST"])
api_bp.add_url_rule(
    "/encuesta/verificar/<int:user_id>",
    view_func=SurveyVerifyView.as_view("encuesta_verificar"),
)
api_bp.add_url_rule(
    "/encuesta/amigo-secreto/<int:user_id>",
    view_func=RecipientSurveyView.as_view("encuesta_amigo_secreto"),
)
