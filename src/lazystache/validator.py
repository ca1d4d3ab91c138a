"""Static checks on template source before rendering."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from .errors import TemplateSyntaxError
from .nodes import FilterCall, Node, SectionNode, VariableNode, iter_tags
from .template import TemplateEngine


class ValidationLevel(Enum):
    """Validation strictness levels."""

    PERMISSIVE = "permissive"  # Syntax and filter references
    STANDARD = "standard"  # Adds escaping warnings
    STRICT = "strict"  # Adds style warnings


@dataclass
class ValidationResult:
    """Result of template validation."""

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    variables: Set[str] = field(default_factory=set)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_warnings(self) -> bool:
        """Check if validation has warnings."""
        return len(self.warnings) > 0

    @property
    def has_errors(self) -> bool:
        """Check if validation has errors."""
        return len(self.errors) > 0


class TemplateValidator:
    """Template validation against an engine's filters and expected data."""

    MAX_LINE_LENGTH = 200
    MAX_SECTION_NESTING = 3
    MAX_FILTER_NESTING = 3

    def __init__(
        self,
        engine: Optional[TemplateEngine] = None,
        level: ValidationLevel = ValidationLevel.STANDARD,
    ) -> None:
        """Initialize the validator.

        Args:
            engine: Template engine whose filters are known (creates new if None)
            level: Validation strictness level
        """
        self.engine = engine or TemplateEngine()
        self.level = level

    def validate(
        self,
        template_string: str,
        expected_variables: Optional[Set[str]] = None,
        max_length: Optional[int] = None,
    ) -> ValidationResult:
        """Validate a template string.

        Args:
            template_string: Template to validate
            expected_variables: Names the data will provide (if known)
            max_length: Maximum allowed template length

        Returns:
            ValidationResult with errors, warnings, and metadata
        """
        errors: List[str] = []
        warnings: List[str] = []
        variables: Set[str] = set()
        metadata: Dict[str, Any] = {}

        if not template_string:
            errors.append("Template cannot be empty")
            return ValidationResult(
                is_valid=False, errors=errors, metadata={"empty": True}
            )

        if max_length and len(template_string) > max_length:
            errors.append(
                f"Template exceeds maximum length ({len(template_string)} > {max_length})"
            )

        metadata["length"] = len(template_string)
        metadata["lines"] = template_string.count("\n") + 1

        try:
            nodes = self.engine.parser.parse(template_string)
        except TemplateSyntaxError as e:
            errors.append(f"Syntax error: {e}")
            return ValidationResult(
                is_valid=False, errors=errors, warnings=warnings, metadata=metadata
            )

        variables = self.engine.extract_variables(template_string)
        filters = self.engine.extract_filters(template_string)
        metadata["variable_count"] = len(variables)
        metadata["filters"] = sorted(filters)

        # Data may provide its own filters: values and filters share names
        provided = expected_variables or set()
        for name in self.engine.unknown_filters(nodes):
            if name.split(".")[0] not in provided:
                errors.append(f"Unknown filter '{name}'")

        if expected_variables is not None:
            undefined = variables - expected_variables
            if undefined:
                errors.append(
                    f"Template uses undefined variables: {', '.join(sorted(undefined))}"
                )

            unused = expected_variables - variables - filters
            if unused and self.level == ValidationLevel.STRICT:
                warnings.append(
                    f"Template does not use all available variables: {', '.join(sorted(unused))}"
                )

        if self.level in (ValidationLevel.STANDARD, ValidationLevel.STRICT):
            warnings.extend(self._escaping_checks(nodes))

        if self.level == ValidationLevel.STRICT:
            warnings.extend(self._strict_checks(template_string, nodes))

        return ValidationResult(
            is_valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
            variables=variables,
            metadata=metadata,
        )

    def _escaping_checks(self, nodes: Tuple[Node, ...]) -> List[str]:
        """Warn about tags that bypass escaping."""
        warnings = []
        for tag in iter_tags(nodes):
            if isinstance(tag, VariableNode) and not tag.escaped:
                warnings.append(
                    f"Potential issue: '{tag.expression}' at {tag.location} "
                    f"bypasses HTML escaping"
                )
        return warnings

    def _strict_checks(self, template_string: str, nodes: Tuple[Node, ...]) -> List[str]:
        """Perform strict validation checks."""
        warnings = []

        for i, line in enumerate(template_string.split("\n"), 1):
            if len(line) > self.MAX_LINE_LENGTH:
                warnings.append(f"Line {i} is very long ({len(line)} chars)")

        nesting = self._section_depth(nodes)
        if nesting > self.MAX_SECTION_NESTING:
            warnings.append(f"Deep section nesting detected (level {nesting})")

        for tag in iter_tags(nodes):
            depth = self._filter_depth(tag.expression)
            if depth > self.MAX_FILTER_NESTING:
                warnings.append(
                    f"Filter chain '{tag.expression}' at {tag.location} nests "
                    f"{depth} calls and may be hard to maintain"
                )

        return warnings

    def _section_depth(self, nodes: Tuple[Node, ...]) -> int:
        depths = [
            1 + self._section_depth(node.children)
            for node in nodes
            if isinstance(node, SectionNode)
        ]
        return max(depths, default=0)

    def _filter_depth(self, expression: Any) -> int:
        if isinstance(expression, FilterCall):
            inner = [self._filter_depth(argument) for argument in expression.arguments]
            return 1 + max(inner, default=0)
        return 0
