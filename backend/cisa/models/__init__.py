from __future__ import annotations

from cisa.models.admin import Admin  # noqa: F401
from cisa.models.faculty import Department, Faculty  # noqa: F401
from cisa.models.registration import Registration  # noqa: F401
