import logging
from datetime import timezone, tzinfo
from typing import Any, List, Mapping, Optional

from pydantic import ValidationError

from delivery_list.schemas import DeliveryViewModel, GroupedRecords, RawRecord
from delivery_list.utils.timestamps import calculate_deadline, format_timestamp

logger = logging.getLogger(__name__)

TOP_LEVEL_STEP_ID = 0


def flatten_records(payload: Any) -> List[Any]:
    """
    Collects every record across all groups, in group order and then array order.
    A group value that is not a list counts as a single record.
    """
    if isinstance(payload, Mapping):
        groups = list(payload.values())
    elif isinstance(payload, list):
        groups = payload
    else:
        return []

    records: List[Any] = []
    for group in groups:
        if isinstance(group, list):
            records.extend(group)
        else:
            records.append(group)
    return records


def is_top_level(record: Any) -> bool:
    """True for records whose Step_ID is the number 0 (parent deliveries, not sub-steps)."""
    if not isinstance(record, Mapping):
        return False
    step_id = record.get('Step_ID')
    if isinstance(step_id, bool) or not isinstance(step_id, (int, float)):
        return False
    return step_id == TOP_LEVEL_STEP_ID


def _count(record: RawRecord, field: str) -> int:
    """Reads a task count, treating missing or falsy values as 0."""
    value = record.get(field)
    if not value:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        logger.warning(f"Delivery {record.get('DelCode_w_o__')}: unusable {field} {value!r}, using 0.")
        return 0


def _text(value: Any) -> str:
    """Renders a raw value as text, writing booleans and whole floats the way the source JSON does."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_view_model(record: RawRecord, tz: tzinfo = timezone.utc) -> DeliveryViewModel:
    """Maps a raw top-level record onto the display view model."""
    del_code = record.get('DelCode_w_o__')
    if del_code is None or del_code == "":
        raise ValueError("DelCode_w_o__ field is missing or empty.")

    start = record.get('Planned_Start_Timestamp')
    delivery = record.get('Planned_Delivery_Timestamp')

    return DeliveryViewModel(
        delCode=_text(del_code),
        client=f"{_text(record.get('Short_description'))} for {_text(record.get('Client'))}",
        initiated=format_timestamp(start, tz),
        deadline=calculate_deadline(delivery, start, tz),
        tasksPlanned=_count(record, 'Planned_Tasks'),
        tasksTotal=_count(record, 'Total_Tasks'),
    )


def normalize_deliveries(payload: Optional[GroupedRecords], tz: tzinfo = timezone.utc) -> List[DeliveryViewModel]:
    """Flattens grouped records, keeps top-level deliveries and maps them, preserving order."""
    if not payload:
        return []

    records = flatten_records(payload)
    deliveries: List[DeliveryViewModel] = []

    for record in records:
        if not is_top_level(record):
            continue
        try:
            deliveries.append(to_view_model(record, tz))
        except (ValidationError, ValueError) as e:
            logger.warning(f"Skipping delivery record (Key: {record.get('Key')}): {e}")

    logger.info(f"Normalized {len(deliveries)} top-level deliveries from {len(records)} records.")
    return deliveries
