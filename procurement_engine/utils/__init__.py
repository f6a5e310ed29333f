from procurement_engine.utils.helpers import (
    clamp, round_to, round_half_up, mean,
    month_key, shift_month, month_end, paginate_results,
)
