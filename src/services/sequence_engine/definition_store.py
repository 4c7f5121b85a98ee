"""
Definition store: sequences and their ordered steps.

Owns the numbering invariant: the steps of a sequence are always numbered
1..total_steps with no gaps. Only ``delete_step`` renumbers, and it does so
in the same transaction as the delete.
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from src.models import SequenceDefinition, SequenceStep
from src.models.enums import DelayType
from src.schemas.sequence import SequenceUpdate, StepCreate, StepUpdate
from src.utils.dates import utcnow
from .errors import NotFoundError, ValidationError
from .storage import SequenceStorage

logger = logging.getLogger(__name__)

StepPayload = Union[StepCreate, Mapping[str, Any]]

_NON_NULLABLE_STEP_FIELDS = ('name', 'action_type', 'delay_type', 'delay_days', 'is_active')


def coerce_payload(schema, payload, label: str):
    """Validate a dict against ``schema``; DTO instances pass through."""
    if isinstance(payload, schema):
        return payload
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid {label}",
            {'errors': e.errors(include_url=False, include_context=False, include_input=False)}
        ) from e


class DefinitionStore:
    """Create, update and reorder sequence definitions."""

    def __init__(self, storage: SequenceStorage, clock=utcnow):
        self.storage = storage
        self.clock = clock

    def get_sequence(self, sequence_id: str) -> SequenceDefinition:
        sequence = self.storage.get_sequence(sequence_id)
        if sequence is None:
            raise NotFoundError("Sequence", sequence_id)
        return sequence

    def list_sequences(self, is_active: Optional[bool] = None) -> List[SequenceDefinition]:
        return self.storage.list_sequences(is_active)

    def list_steps(self, sequence_id: str) -> List[SequenceStep]:
        self.get_sequence(sequence_id)
        return self.storage.list_steps(sequence_id)

    def create_sequence(
        self,
        name: str,
        steps: Iterable[StepPayload] = (),
        description: Optional[str] = None,
        is_active: bool = True,
        created_by_id: Optional[str] = None,
    ) -> SequenceDefinition:
        """Persist a definition and its steps in one transaction."""
        if not name or not name.strip():
            raise ValidationError("Sequence name is required")

        payloads = [
            coerce_payload(StepCreate, step, f"step {index + 1}")
            for index, step in enumerate(steps or [])
        ]

        now = self.clock()
        with self.storage.transaction():
            sequence = self.storage.add_sequence(SequenceDefinition(
                name=name.strip(),
                description=description,
                is_active=is_active,
                total_steps=len(payloads),
                created_by_id=created_by_id,
                created_at=now,
            ))
            for index, payload in enumerate(payloads):
                self.storage.add_step(self._build_step(sequence.id, index + 1, payload, now))

        logger.info(f"Created sequence {sequence.id} '{sequence.name}' with {len(payloads)} steps")
        return sequence

    def update_sequence(self, sequence_id: str, changes: Union[SequenceUpdate, Mapping[str, Any]]) -> SequenceDefinition:
        update = coerce_payload(SequenceUpdate, changes, "sequence update")
        fields = update.model_dump(exclude_unset=True)

        if 'name' in fields and fields['name'] is None:
            raise ValidationError("Sequence name cannot be null")
        if 'is_active' in fields and fields['is_active'] is None:
            raise ValidationError("is_active cannot be null")

        with self.storage.transaction():
            sequence = self.get_sequence(sequence_id)
            for field, value in fields.items():
                setattr(sequence, field, value)
            sequence.updated_at = self.clock()

        if fields.get('is_active') is False:
            logger.info(f"Sequence {sequence_id} deactivated")
        return sequence

    def delete_sequence(self, sequence_id: str) -> None:
        with self.storage.transaction():
            sequence = self.get_sequence(sequence_id)
            self.storage.delete_sequence(sequence)
        logger.info(f"Deleted sequence {sequence_id} with its steps and assignments")

    def add_step(self, sequence_id: str, step: StepPayload) -> SequenceStep:
        """Append a step as number total_steps + 1."""
        payload = coerce_payload(StepCreate, step, "step")
        now = self.clock()

        with self.storage.transaction():
            sequence = self.get_sequence(sequence_id)
            step_number = sequence.total_steps + 1
            created = self.storage.add_step(self._build_step(sequence.id, step_number, payload, now))
            sequence.total_steps = step_number
            sequence.updated_at = now

        logger.info(f"Added step {step_number} ({created.action_type}) to sequence {sequence_id}")
        return created

    def update_step(self, sequence_id: str, step_id: str, changes: Union[StepUpdate, Mapping[str, Any]]) -> SequenceStep:
        update = coerce_payload(StepUpdate, changes, "step update")
        fields = update.model_dump(exclude_unset=True)

        for field in _NON_NULLABLE_STEP_FIELDS:
            if field in fields and fields[field] is None:
                raise ValidationError(f"{field} cannot be null")
        for field in ('action_type', 'delay_type'):
            if fields.get(field) is not None:
                fields[field] = fields[field].value

        with self.storage.transaction():
            step = self._get_step(sequence_id, step_id)
            delay_type = fields.get('delay_type', step.delay_type)
            fixed_date = fields.get('fixed_date', step.fixed_date)
            if delay_type == DelayType.FIXED_DATE.value and fixed_date is None:
                raise ValidationError("fixed_date is required when delay_type is FIXED_DATE")
            for field, value in fields.items():
                setattr(step, field, value)
            step.updated_at = self.clock()

        return step

    def delete_step(self, sequence_id: str, step_id: str) -> List[SequenceStep]:
        """Delete a step and renumber the rest to 1..N. Returns the remaining steps."""
        with self.storage.transaction():
            sequence = self.get_sequence(sequence_id)
            step = self._get_step(sequence_id, step_id)
            removed_number = step.step_number

            self.storage.remove_step(step)
            remaining = [s for s in self.storage.list_steps(sequence_id) if s.id != step_id]
            remaining.sort(key=lambda s: s.step_number)
            self.storage.replace_step_ordering(sequence_id, remaining)

            sequence.total_steps = len(remaining)
            sequence.updated_at = self.clock()

        logger.info(
            f"Deleted step {removed_number} from sequence {sequence_id}, "
            f"{len(remaining)} steps renumbered"
        )
        return remaining

    def _get_step(self, sequence_id: str, step_id: str) -> SequenceStep:
        self.get_sequence(sequence_id)
        step = self.storage.get_step(step_id)
        if step is None or step.sequence_id != sequence_id:
            raise NotFoundError("Step", step_id)
        return step

    @staticmethod
    def _build_step(sequence_id: str, step_number: int, payload: StepCreate, now) -> SequenceStep:
        return SequenceStep(
            sequence_id=sequence_id,
            step_number=step_number,
            name=payload.name or f"Step {step_number}",
            description=payload.description,
            action_type=payload.action_type.value,
            template_id=payload.template_id,
            delay_days=payload.delay_days,
            delay_type=payload.delay_type.value,
            fixed_date=payload.fixed_date,
            conditions=payload.conditions,
            is_active=payload.is_active,
            created_at=now,
        )
