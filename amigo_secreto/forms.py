from __future__ import annotations

from flask import request
from flask_wtf import FlaskForm
from wtforms import BooleanField, IntegerField, StringField
from wtforms.validators import DataRequired, Length, Optional

from .errors import ValidationError


def text_only(value):
    """JSON numbers, lists and objects are not answers; DataRequired rejects None."""
    return value if isinstance(value, str) else None


class JSONIntegerField(IntegerField):
    """Accepts JSON integers or digit strings, nothing else (booleans included)."""

    def process_formdata(self, valuelist):
        if valuelist:
            value = valuelist[0]
            if isinstance(value, bool) or not isinstance(value, (int, str)):
                self.data = None
                raise ValueError(self.gettext("Not a valid integer value."))
        super().process_formdata(valuelist)


class JSONForm(FlaskForm):
    # Header-authenticated JSON API; no browser session to protect.
    class Meta:
        csrf = False

    def __init__(self, *args, **kwargs):
        if request.is_json and not isinstance(request.get_json(silent=True), dict):
            raise ValidationError("El cuerpo de la petición debe ser un objeto JSON")
        super().__init__(*args, **kwargs)


class SurveyForm(JSONForm):
    userId = JSONIntegerField("userId", validators=[DataRequired()])
    gustosActuales = StringField("gustosActuales", filters=[text_only], validators=[DataRequired(), Length(max=1000)])
    colorFavorito = StringField("colorFavorito", filters=[text_only], validators=[DataRequired(), Length(max=120)])
    tipoRegalo = StringField("tipoRegalo", filters=[text_only], validators=[DataRequired(), Length(max=1000)])
    quiereProbar = StringField("quiereProbar", filters=[text_only], validators=[DataRequired(), Length(max=1000)])
    tallaRopa = StringField("tallaRopa", filters=[text_only], validators=[DataRequired(), Length(max=32)])

    def answers(self) -> dict[str, str]:
        return {
            "gustos_actuales": self.gustosActuales.data,
            "color_favorito": self.colorFavorito.data,
            "tipo_regalo": self.tipoRegalo.data,
            "quiere_probar": self.quiereProbar.data,
            "talla_ropa": self.tallaRopa.data,
        }


class ParticipantForm(JSONForm):
    nombreCompleto = StringField("nombreCompleto", filters=[text_only], validators=[DataRequired(), Length(max=120)])
    numeroTelefono = StringField("numeroTelefono", filters=[text_only], validators=[DataRequired(), Length(max=32)])
    esAdmin = BooleanField("esAdmin", validators=[Optional()])
