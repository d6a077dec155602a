# FILE: hims_grn/services/grn_errors.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from hims_grn.services.grn_validation import DIFFERENCE_REASON_REQUIRED, Issue


class GrnError(RuntimeError):
    status_code = 400

    def details(self) -> Optional[Any]:
        return None


class GrnNotFound(GrnError):
    status_code = 404

    def __init__(self, grn_id: Any):
        self.grn_id = grn_id
        super().__init__("GRN not found")


class NotEditable(GrnError):
    def __init__(self, status: Any, action: str = "edited"):
        self.status = getattr(status, "value", status)
        self.action = action
        super().__init__(f"Only DRAFT GRN can be {action} (current status: {self.status})")


class NotPersisted(GrnError):
    def __init__(self, msg: str = "Save draft first"):
        super().__init__(msg)


class ValidationFailed(GrnError):
    """Carries every issue found, not just the first."""

    def __init__(self, issues: Sequence[Issue]):
        self.issues: List[Issue] = list(issues)
        first = self.issues[0].message if self.issues else "Validation failed"
        more = len(self.issues) - 1
        msg = f"{first} (+{more} more)" if more > 0 else first
        super().__init__(msg)

    def details(self) -> Dict[str, Any]:
        return {"issues": [i.to_dict() for i in self.issues]}


class VarianceUnexplained(ValidationFailed):
    pass


def raise_for_issues(issues: Sequence[Issue]) -> None:
    if not issues:
        return
    if all(i.code == DIFFERENCE_REASON_REQUIRED for i in issues):
        raise VarianceUnexplained(issues)
    raise ValidationFailed(issues)
