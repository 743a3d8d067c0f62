import re
import uuid

import click

from mdloader.constants import Order

ORDER_PATTERN = re.compile(r"^(?P<field>\w+):(?P<direction>asc|desc)$", re.IGNORECASE)


def validate_uuid(ctx: click.Context, param, value):
    """
    Validate a MangaDex resource ID argument.

    Parameters:
        ctx (click.Context): The Click context.
        param: The parameter definition.
        value: The ID string (or tuple of ID strings) provided.

    Returns:
        The normalized lowercase ID(s); raises click.BadParameter when malformed.
    """
    if value is None:
        return value
    if isinstance(value, tuple):
        return tuple(validate_uuid(ctx, param, item) for item in value)
    try:
        return str(uuid.UUID(value))
    except ValueError:
        raise click.BadParameter(f"Invalid MangaDex id: {value}")


def parse_order(ctx: click.Context, param, value):
    """
    Convert repeated ``field:direction`` options into an order mapping.

    Parameters:
        ctx (click.Context): The Click context.
        param: The parameter definition.
        value: The tuple of ``field:direction`` strings provided.

    Returns:
        dict[str, Order]: Sort direction per field, in the given order.
    """
    order = {}
    for item in value or ():
        match = ORDER_PATTERN.match(item)
        if not match:
            raise click.BadParameter(f"Expected <field>:<asc|desc>, got: {item}")
        order[match.group("field")] = Order(match.group("direction").lower())
    return order
