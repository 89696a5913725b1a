"""
Fixed parameters of the round-tiered sale.

Amounts are integers in base units: payments in the smallest payment
denomination (wei-like), tokens in the token's smallest unit (4 decimals).
"""

# Payment amount that buys `rate` tokens. Payments are floored to whole units
# before conversion.
UNIT_SIZE = 10 ** 14

# Percentages are expressed as whole numbers (5 == 5%).
PERCENT = 100

DEFAULT_TIER_COUNT = 6

# Token decimals used by the default ladder (150_000_000e4 == 150M tokens).
TOKEN_SCALE = 10 ** 4

# (cumulative cap, tokens per payment unit, bonus %)
DEFAULT_TIER_LADDER = (
    (150_000_000 * TOKEN_SCALE, 5000, 30),
    (300_000_000 * TOKEN_SCALE, 4000, 20),
    (450_000_000 * TOKEN_SCALE, 3500, 15),
    (600_000_000 * TOKEN_SCALE, 3000, 10),
    (750_000_000 * TOKEN_SCALE, 2500, 5),
    (900_000_000 * TOKEN_SCALE, 2000, 0),
)

# Max digits for amount columns; large enough for wei totals.
AMOUNT_MAX_DIGITS = 40
