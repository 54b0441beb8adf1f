from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
import hashlib

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def quantize_money(amount: Decimal) -> Decimal:
    """Round to the currency minor unit, half-up."""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def percent_of(amount: Decimal, percentage: Decimal) -> Decimal:
    """amount * percentage / 100, rounded to cents."""
    return quantize_money(Decimal(amount) * Decimal(percentage) / HUNDRED)


def compute_weighted_shares(amount: Decimal, weights: dict, seed: str | None = None) -> dict:
    """
    Split amount across the keys of `weights` proportionally, so that the shares
    sum EXACTLY to amount (rounded to cents).
    Works in integer cents to avoid floating point errors.

    Every key first gets the floor of its exact cent share. The leftover cents go
    one each to the keys with the largest fractional remainder. Ties are broken
    by a hash of seed + key when a seed is given (so the same worker does not
    always win the extra cent), otherwise by str(key).

    Weights do not need to sum to anything in particular; they are normalized by
    their total. A zero total yields zero shares for everyone.

    Args:
        amount: The total amount to split.
        weights: Mapping of key (e.g. master id) to a non-negative weight.
        seed: Optional string seed (e.g. order id) for the tie-break order.

    Returns:
        Dictionary mapping key to its share (Decimal, two places).
    """
    if not weights:
        return {}

    total_weight = sum((Decimal(w) for w in weights.values()), Decimal("0"))
    if total_weight <= 0:
        return {key: Decimal("0.00") for key in weights}

    amount_cents = to_cents(amount)

    base_cents = {}
    remainders = {}
    for key, weight in weights.items():
        exact = Decimal(amount_cents) * Decimal(weight) / total_weight
        floor_cents = int(exact.to_integral_value(rounding=ROUND_FLOOR))
        base_cents[key] = floor_cents
        remainders[key] = exact - floor_cents

    extra_count = amount_cents - sum(base_cents.values())

    if seed:
        def tiebreak(key):
            return hashlib.md5(f"{seed}:{key}".encode()).hexdigest()
    else:
        tiebreak = str

    ranked = sorted(weights, key=lambda k: (-remainders[k], tiebreak(k)))

    shares = {}
    for i, key in enumerate(ranked):
        cents = base_cents[key] + (1 if i < extra_count else 0)
        shares[key] = (Decimal(cents) / Decimal(100)).quantize(CENT)

    return shares


def compute_shares(amount: Decimal, keys: list, seed: str | None = None) -> dict:
    """Even split of amount across keys; shares sum exactly to amount."""
    return compute_weighted_shares(amount, {key: Decimal("1") for key in keys}, seed=seed)
