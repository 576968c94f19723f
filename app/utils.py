import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional


def generate_hold_id() -> str:
    """Generate a unique hold ID"""
    return f"hold-{str(uuid.uuid4())}"


def generate_order_id() -> str:
    """Generate a unique order ID"""
    return f"order-{str(uuid.uuid4())}"


def generate_ticket_id() -> str:
    """Generate a unique ticket ID"""
    return f"ticket-{str(uuid.uuid4())}"


def generate_event_id() -> str:
    """Generate a unique event ID"""
    return f"event-{str(uuid.uuid4())[:8]}"


def generate_qr_code() -> str:
    """Opaque scannable code printed on the ticket"""
    return f"QR-{uuid.uuid4().hex.upper()}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_hold_expiry_time(now: datetime, ttl_seconds: int = 600) -> datetime:
    """Get hold expiry time (default 10 minutes)"""
    return now + timedelta(seconds=ttl_seconds)


def to_timestamp(value: datetime) -> str:
    """Serialize an instant as a fixed-width UTC ISO string.

    Every stored timestamp uses the same width and offset so string
    comparison in a DynamoDB filter orders them like the instants they encode.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds")


def from_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def to_decimal(value: float) -> Decimal:
    """DynamoDB rejects floats; go through str to keep the printed value"""
    return Decimal(str(value))


def seat_sort_key(seat_id: str) -> str:
    return f"SEAT#{seat_id}"


def ticket_sort_key(ticket_id: str) -> str:
    return f"TICKET#{ticket_id}"


def idempotency_pk(idempotency_key: str) -> str:
    return f"PAYMENT#{idempotency_key}"


def create_settlement_transaction_items(table_name: str, hold: Any, order: Any,
                                        tickets: List[Any], now: datetime) -> List[Dict[str, Any]]:
    """Create transaction items for settling a hold.

    Item order matters: callers map CancellationReasons back by index
    (0 idempotency key, 1 order, 2 hold, 3.. seats, then tickets).
    """
    current_time = to_timestamp(now)
    transact_items = []

    # Claim the idempotency key; a second settlement with the same key fails here
    transact_items.append({
        "Put": {
            "TableName": table_name,
            "Item": {
                "pk": {"S": idempotency_pk(order.idempotency_key)},
                "sk": {"S": "IDEMPOTENCY"},
                "record_type": {"S": "IDEMPOTENCY"},
                "idempotency_key": {"S": order.idempotency_key},
                "order_id": {"S": order.order_id},
                "hold_id": {"S": hold.hold_id},
                "created_at": {"S": current_time}
            },
            "ConditionExpression": "attribute_not_exists(pk)"
        }
    })

    transact_items.append({
        "Put": {
            "TableName": table_name,
            "Item": {
                "pk": {"S": order.order_id},
                "sk": {"S": "ORDER"},
                "record_type": {"S": "ORDER"},
                "order_id": {"S": order.order_id},
                "holder_id": {"S": order.holder_id},
                "event_id": {"S": order.event_id},
                "seat_ids": {"L": [{"S": seat_id} for seat_id in order.seat_ids]},
                "hold_id": {"S": order.hold_id},
                "amount": {"N": str(to_decimal(order.amount))},
                "status": {"S": order.status.value},
                "idempotency_key": {"S": order.idempotency_key},
                "created_at": {"S": to_timestamp(order.created_at)}
            },
            "ConditionExpression": "attribute_not_exists(pk)"
        }
    })

    # Hold must still be ACTIVE and unexpired at commit time; the sweeper flips it
    # to EXPIRED with the same status guard
    transact_items.append({
        "Update": {
            "TableName": table_name,
            "Key": {
                "pk": {"S": hold.hold_id},
                "sk": {"S": "HOLD"}
            },
            "UpdateExpression": "SET #status = :confirmed, updated_at = :updated_at",
            "ConditionExpression": "#status = :active AND expire_at >= :now",
            "ExpressionAttributeNames": {"#status": "status"},
            "ExpressionAttributeValues": {
                ":confirmed": {"S": "CONFIRMED"},
                ":active": {"S": "ACTIVE"},
                ":now": {"S": current_time},
                ":updated_at": {"S": current_time}
            }
        }
    })

    for seat_id in hold.seat_ids:
        transact_items.append({
            "Update": {
                "TableName": table_name,
                "Key": {
                    "pk": {"S": hold.event_id},
                    "sk": {"S": seat_sort_key(seat_id)}
                },
                "UpdateExpression": "SET #status = :sold, updated_at = :updated_at REMOVE hold_id, holder_id",
                "ConditionExpression": "#status = :held AND hold_id = :hold_id",
                "ExpressionAttributeNames": {"#status": "status"},
                "ExpressionAttributeValues": {
                    ":sold": {"S": "SOLD"},
                    ":held": {"S": "HELD"},
                    ":hold_id": {"S": hold.hold_id},
                    ":updated_at": {"S": current_time}
                }
            }
        })

    for ticket in tickets:
        transact_items.append({
            "Put": {
                "TableName": table_name,
                "Item": {
                    "pk": {"S": ticket.order_id},
                    "sk": {"S": ticket_sort_key(ticket.ticket_id)},
                    "record_type": {"S": "TICKET"},
                    "ticket_id": {"S": ticket.ticket_id},
                    "event_id": {"S": ticket.event_id},
                    "seat_id": {"S": ticket.seat_id},
                    "holder_id": {"S": ticket.holder_id},
                    "qr_code": {"S": ticket.qr_code},
                    "order_id": {"S": ticket.order_id},
                    "created_at": {"S": to_timestamp(ticket.created_at)}
                },
                "ConditionExpression": "attribute_not_exists(pk)"
            }
        })

    return transact_items


def cancellation_codes(reasons: Optional[List[Dict[str, Any]]]) -> List[str]:
    """Flatten TransactionCanceledException reasons into a list of codes"""
    if not reasons:
        return []
    return [reason.get("Code", "None") for reason in reasons]
