from swingcoach.services.exceptions import InvalidInputError, PayloadTooLargeError
from swingcoach.services.models import Strategy


def to_megabytes(size: int) -> float:
    return size / 1024 / 1024


def ensure_within_cap(size: int, max_size: int) -> None:
    if size > max_size:
        raise PayloadTooLargeError(
            f"File size exceeds the {to_megabytes(max_size):.0f}MB limit: "
            f"{to_megabytes(size):.1f}MB"
        )


def choose_strategy(size: int, inline_limit: int, max_size: int) -> Strategy:
    """
    Pick how a payload of the given size reaches the model.

    :param size: Payload size in bytes.
    :param inline_limit: Largest size that may be sent inline (inclusive).
    :param max_size: Absolute cap on accepted uploads.
    :return: Strategy.INLINE or Strategy.STAGED.
    :raises InvalidInputError: If the payload is empty.
    :raises PayloadTooLargeError: If the payload is over the absolute cap.
    """
    if size <= 0:
        raise InvalidInputError("The uploaded file is empty.")
    ensure_within_cap(size, max_size)
    if size <= inline_limit:
        return Strategy.INLINE
    return Strategy.STAGED
