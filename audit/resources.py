from __future__ import annotations

from core.resources import Resource

from .forms import AuditIndexForm
from .models import Audit
from .services.audits import AuditService


class AuditResource(Resource):
    model = Audit
    service_class = AuditService
    index_form_class = AuditIndexForm
    bulk_actions = ()
    component = "Auditoria"
    url_namespace = "audits"
    has_edit_route = False
