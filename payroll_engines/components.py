"""
Component Resolver -- classifies salary components for gross assembly.

Responsibility:
    Annotates each ``SalaryComponentInstance`` with its taxability, its
    calculation-base memberships and whether it is a fixed amount.

Metadata precedence:
    1. Metadata carried by the instance (custom components).
    2. The country's component catalog entry, when activated.
    3. The conservative default: taxable, total gross only, prorated.

    A catalog entry not yet activated for the tenant resolves to the
    conservative default in preview mode and is rejected in a committed
    run.  Components named in the country's categorial-salary designation
    always join ``CATEGORIAL_SALARY``.

Pure computation: no I/O.  Defaulted components are reported as warnings
on the result and logged.

Usage:
    from payroll_engines.components import ComponentResolver

    resolution = ComponentResolver().resolve(
        payroll_input.components,
        rules.component_catalog,
        categorial_codes=rules.categorial_component_codes,
        base_salary_codes=rules.base_salary_codes,
        is_preview=payroll_input.is_preview,
    )
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from payroll_config.schema import (
    CONSERVATIVE_METADATA,
    BaseId,
    ComponentDefinition,
    ComponentMetadata,
)
from payroll_engines.models import SalaryComponentInstance, SourceType
from payroll_kernel.exceptions import ValidationError
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.components")


class MetadataSource(str, Enum):
    """Where a component's classification came from."""

    INSTANCE = "instance"
    CATALOG = "catalog"
    DEFAULT = "default"


@dataclass(frozen=True)
class ResolvedComponent:
    """A salary component with its resolved classification."""

    code: str
    name: str
    amount: Decimal
    source_type: SourceType
    metadata: ComponentMetadata
    metadata_source: MetadataSource

    @property
    def taxable(self) -> bool:
        return self.metadata.taxable

    @property
    def is_fixed_amount(self) -> bool:
        return self.metadata.is_fixed_amount

    @property
    def bases(self) -> frozenset[BaseId]:
        return self.metadata.included_in_bases


@dataclass(frozen=True)
class ResolutionResult:
    """Resolved components, in input order, plus resolution warnings."""

    components: tuple[ResolvedComponent, ...]
    warnings: tuple[str, ...] = ()

    @property
    def defaulted_codes(self) -> tuple[str, ...]:
        return tuple(
            c.code
            for c in self.components
            if c.metadata_source is MetadataSource.DEFAULT
        )


class ComponentResolver:
    """Classifies salary components against a component catalog."""

    def resolve(
        self,
        components: Iterable[SalaryComponentInstance],
        catalog: Mapping[str, ComponentDefinition],
        *,
        categorial_codes: frozenset[str] = frozenset(),
        base_salary_codes: frozenset[str] = frozenset(),
        is_preview: bool = False,
    ) -> ResolutionResult:
        """
        Resolve every component's metadata.

        Args:
            components: Component instances from the payroll input.
            catalog: Component definitions by code.
            categorial_codes: Codes designated as categorial salary.
            base_salary_codes: Codes that count as a base salary; when
                non-empty, at least one must be present.
            is_preview: Estimate mode; unactivated components default.

        Raises:
            ValidationError: If no base salary is present, or a component
                is not activated in a committed run.
        """
        resolved: list[ResolvedComponent] = []
        warnings: list[str] = []

        for instance in components:
            metadata, source = self._lookup(instance, catalog, is_preview)
            if source is MetadataSource.DEFAULT:
                warning = (
                    f"Component {instance.code} has no active metadata; "
                    f"using conservative defaults"
                )
                warnings.append(warning)
                logger.warning(
                    "component_metadata_defaulted",
                    extra={
                        "component_code": instance.code,
                        "is_preview": is_preview,
                    },
                )
            if instance.code in categorial_codes:
                metadata = metadata.with_bases(BaseId.CATEGORIAL_SALARY)

            resolved.append(
                ResolvedComponent(
                    code=instance.code,
                    name=instance.name,
                    amount=instance.amount,
                    source_type=instance.source_type,
                    metadata=metadata,
                    metadata_source=source,
                )
            )

        if base_salary_codes and not any(
            c.code in base_salary_codes for c in resolved
        ):
            logger.error(
                "base_salary_missing",
                extra={"expected_codes": sorted(base_salary_codes)},
            )
            raise ValidationError(
                "No base salary component: expected one of "
                + ", ".join(sorted(base_salary_codes)),
                field="components",
            )

        return ResolutionResult(components=tuple(resolved), warnings=tuple(warnings))

    def _lookup(
        self,
        instance: SalaryComponentInstance,
        catalog: Mapping[str, ComponentDefinition],
        is_preview: bool,
    ) -> tuple[ComponentMetadata, MetadataSource]:
        if instance.metadata is not None:
            return instance.metadata, MetadataSource.INSTANCE

        definition = catalog.get(instance.code)
        if definition is None:
            return CONSERVATIVE_METADATA, MetadataSource.DEFAULT

        if not definition.activated:
            if is_preview:
                return CONSERVATIVE_METADATA, MetadataSource.DEFAULT
            raise ValidationError(
                f"Component {instance.code} is not activated for this tenant",
                field="components",
            )

        return definition.metadata, MetadataSource.CATALOG
