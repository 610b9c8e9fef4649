from __future__ import annotations
import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping, Optional as Opt, Type, TypeVar
from flask import request
from flask_babel import gettext as _, lazy_gettext as _l
from flask_wtf import FlaskForm
from werkzeug.datastructures import ImmutableMultiDict
from wtforms import StringField, PasswordField, TextAreaField, SelectField, DecimalField, IntegerField
from wtforms.fields import DateField
from wtforms.validators import (
    DataRequired,
    Email,
    EqualTo,
    InputRequired,
    Length,
    NumberRange,
    Optional,
    Regexp,
    StopValidation,
    ValidationError,
)
from .errors import ValidationFailed
from .models import PACKAGING_FORMATS, TEAM_SIZES

F = TypeVar("F", bound=FlaskForm)

MAX_INT = 2147483647


def json_formdata(payload: Opt[Mapping[str, Any]] = None) -> ImmutableMultiDict:
    """Turn a JSON body into form data WTForms can coerce.

    JSON numbers become strings so IntegerField/DecimalField parse them the
    same way as a posted form; nulls are dropped so the field counts as not
    supplied.
    """
    if payload is None:
        payload = request.get_json(silent=True) or {}
    if not isinstance(payload, Mapping):
        raise ValidationFailed(message=_("Request body must be a JSON object."))
    items = []
    for key, value in payload.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        items.append((key, str(value)))
    return ImmutableMultiDict(items)


def load_form(form_cls: Type[F], payload: Opt[Mapping[str, Any]] = None) -> F:
    """Build ``form_cls`` from the request body and validate it, raising ValidationFailed."""
    form = form_cls(formdata=json_formdata(payload))
    if not form.validate():
        raise ValidationFailed({name: [str(e) for e in errs] for name, errs in form.errors.items()})
    return form


class Finite:
    """Reject NaN and infinities before any range check compares them."""

    def __init__(self, message: str | None = None):
        self.message = message

    def __call__(self, form, field):
        if field.data is None:
            return
        try:
            finite = math.isfinite(field.data)
        except (TypeError, ValueError):
            finite = False
        if not finite:
            raise StopValidation(self.message or _l("Must be a finite number."))


class GreaterThan:
    def __init__(self, bound, message: str | None = None):
        self.bound = bound
        self.message = message

    def __call__(self, form, field):
        if field.data is not None and not field.data > self.bound:
            raise ValidationError(self.message or _l("Must be greater than %(bound)s.", bound=self.bound))


def _strip(value):
    return value.strip() if isinstance(value, str) else value


def _places(n: int):
    """Round a decimal to the scale of its column so validators see the stored value."""
    exp = Decimal(1).scaleb(-n)

    def _round(value):
        if isinstance(value, Decimal) and value.is_finite():
            try:
                return value.quantize(exp, rounding=ROUND_HALF_UP)
            except InvalidOperation:
                # too many digits for the context; NumberRange rejects it
                return value
        return value

    return _round


class JSONForm(FlaskForm):
    # bodies arrive as JSON on csrf-exempt blueprints
    class Meta:
        csrf = False


class RegisterForm(JSONForm):
    email = StringField("email", filters=[_strip], validators=[DataRequired(), Email(), Length(max=255)])
    password = PasswordField("password", validators=[DataRequired(), Length(min=8)])
    full_name = StringField("full_name", filters=[_strip], validators=[Optional(), Length(max=100)])


class LoginForm(JSONForm):
    email = StringField("email", filters=[_strip], validators=[DataRequired(), Email(), Length(max=255)])
    password = PasswordField("password", validators=[DataRequired()])


class ProfileForm(JSONForm):
    full_name = StringField(
        "full_name",
        filters=[_strip],
        validators=[
            DataRequired(_l("Name cannot be empty")),
            Length(max=100, message=_l("Name must be less than 100 characters")),
        ],
    )


class ChangePasswordForm(JSONForm):
    current = PasswordField("current", validators=[DataRequired(), Length(min=6)])
    new = PasswordField(
        "new",
        validators=[
            DataRequired(),
            Length(min=8, message=_l("Password must be at least 8 characters")),
            Regexp(r".*[A-Z]", message=_l("Password must contain at least one uppercase letter")),
            Regexp(r".*[a-z]", message=_l("Password must contain at least one lowercase letter")),
            Regexp(r".*[0-9]", message=_l("Password must contain at least one number")),
        ],
    )
    confirm = PasswordField("confirm", validators=[DataRequired(), EqualTo("new", message=_l("Passwords do not match"))])


def _organization_name() -> StringField:
    return StringField(
        "name",
        filters=[_strip],
        validators=[
            DataRequired(_l("Organization name is required")),
            Length(max=100, message=_l("Organization name must be less than 100 characters")),
        ],
    )


class OrganizationForm(JSONForm):
    name = _organization_name()
    team_size = SelectField("team_size", choices=[(s, s) for s in TEAM_SIZES], default="small")


class OrganizationUpdateForm(JSONForm):
    name = _organization_name()


class DeleteOrganizationForm(JSONForm):
    confirm = StringField(
        "confirm",
        validators=[
            DataRequired(_l("Please type DELETE to confirm")),
            Regexp(r"^DELETE$", message=_l("Please type DELETE to confirm")),
        ],
    )


class InviteMemberForm(JSONForm):
    email = StringField("email", filters=[_strip], validators=[DataRequired(), Email(), Length(max=255)])
    role = SelectField("role", choices=[("member", "member"), ("admin", "admin")], default="member")


class BatchForm(JSONForm):
    name = StringField("name", filters=[_strip], validators=[DataRequired(), Length(max=200)])
    variety = StringField("variety", filters=[_strip], validators=[DataRequired(), Length(max=200)])
    volume = DecimalField(
        "volume",
        places=2,
        filters=[_places(2)],
        validators=[
            InputRequired(),
            Finite(),
            GreaterThan(0, message=_l("Volume must be a positive number.")),
            NumberRange(max=99999999.99),
        ],
    )
    start_date = DateField("start_date", format="%Y-%m-%d", validators=[DataRequired()])


class FermentationLogForm(JSONForm):
    recorded_at = DateField("recorded_at", format="%Y-%m-%d", validators=[Optional()])
    temperature = DecimalField(
        "temperature", filters=[_places(2)], validators=[Optional(), Finite(), NumberRange(min=-999.99, max=999.99)]
    )
    specific_gravity = DecimalField(
        "specific_gravity", filters=[_places(3)], validators=[Optional(), Finite(), NumberRange(min=0, max=999.999)]
    )
    ph = DecimalField("ph", filters=[_places(2)], validators=[Optional(), Finite(), NumberRange(min=0, max=14)])
    notes = TextAreaField("notes", validators=[Optional(), Length(max=5000)])


def _score(name: str) -> IntegerField:
    return IntegerField(
        name,
        validators=[Optional(), NumberRange(min=1, max=5, message=_l("Scores must be between 1 and 5."))],
    )


class TastingNoteForm(JSONForm):
    recorded_at = DateField("recorded_at", format="%Y-%m-%d", validators=[Optional()])
    sweetness = _score("sweetness")
    acidity = _score("acidity")
    body = _score("body")
    aroma = TextAreaField("aroma", validators=[Optional(), Length(max=2000)])
    flavor = TextAreaField("flavor", validators=[Optional(), Length(max=2000)])
    finish = TextAreaField("finish", validators=[Optional(), Length(max=2000)])
    notes = TextAreaField("notes", validators=[Optional(), Length(max=5000)])


class PackagingScheduleForm(JSONForm):
    target_date = DateField("target_date", format="%Y-%m-%d", validators=[DataRequired()])
    format = SelectField("format", choices=[(f, f) for f in PACKAGING_FORMATS], validators=[DataRequired()])
    quantity = IntegerField(
        "quantity",
        validators=[
            Optional(),
            NumberRange(min=0, message=_l("Quantity cannot be negative.")),
            NumberRange(max=MAX_INT),
        ],
    )
    notes = TextAreaField("notes", validators=[Optional(), Length(max=5000)])
