from __future__ import annotations

from flask.views import MethodView
from flask_login import current_user

from .extensions import login_manager
from .views.envelope import fail


def is_admin_user() -> bool:
    return current_user.is_authenticated and bool(current_user.is_admin)


@login_manager.unauthorized_handler
def _unauthenticated():
    return fail("Autenticación requerida", status=401)


class LoginRequiredMixin(MethodView):
    def dispatch_request(self, *args, **kwargs):
        if not current_user.is_authenticated:
            return _unauthenticated()
        return super().dispatch_request(*args, **kwargs)


class AdminRequiredMixin(LoginRequiredMixin):
    def dispatch_request(self, *args, **kwargs):
        if current_user.is_authenticated and not is_admin_user():
            return fail("No autorizado", status=403)
        return super().dispatch_request(*args, **kwargs)


class SelfOnlyMixin(LoginRequiredMixin):
    """
    For routes carrying ``<int:user_id>``: the caller may only ask about
    themselves.
    """
    def dispatch_request(self, *args, **kwargs):
        user_id = kwargs.get("user_id")
        if current_user.is_authenticated and user_id is not None and user_id != current_user.id:
            return fail("No autorizado", status=403)
        return super().dispatch_request(*args, **kwargs)
