from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .command_catalog import CommandCatalog, load_catalog

# Filled from session context or the chain resolver, never asked for
CONTEXT_FILLED_PARAMS = frozenset({"workspaceSlug", "projectSlug"})


@dataclass
class ValidationResult:
    valid: bool
    missing: List[str] = field(default_factory=list)
    message: Optional[str] = None

    def clarification(self) -> str:
        """Text appended to the reply when the command is withheld."""
        if self.missing:
            return f"I need the following information to proceed: {', '.join(self.missing)}."
        return self.message or ""


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    # False and empty strings count as absent
    if value is False or value == "":
        return True
    return str(value).strip() == ""


def validate_parameters(
    name: str, parameters: Dict[str, Any], catalog: Optional[CommandCatalog] = None
) -> ValidationResult:
    """Check a command against the catalog and list missing required params."""
    catalog = catalog or load_catalog()
    spec = catalog.get(name)
    if spec is None:
        return ValidationResult(valid=False, message=f"Unknown command: {name}")

    missing = [
        param
        for param in spec.required_params
        if param not in CONTEXT_FILLED_PARAMS and _is_blank(parameters.get(param))
    ]
    if missing:
        return ValidationResult(
            valid=False,
            missing=missing,
            message=f"Missing required parameters for {name}: {', '.join(missing)}",
        )
    return ValidationResult(valid=True)
