# =============================================================================
# lib/ - Standalone Client & Utility Modules
# =============================================================================
# This package contains reusable clients and helpers:
# - supabase_client.py: Singleton Supabase client, row/RPC helpers, storage
# - llm.py: OpenAI chat and JSON completions
# - segmind.py: Image generation and face swap
# - stripe_client.py: Stripe configuration, customers, webhook verification
# - late.py: Late social scheduling API
# - images.py: Data URL / base64 image handling
# - utils.py: UUIDs, UTC timestamps, money rounding
#
# Nothing here imports from core/ or the routers.
# =============================================================================

from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.llm import LLMError
from lib.utils import normalize_uuid, round_money, utc_now, utc_now_iso

__all__ = [
    # Supabase
    "SupabaseClient",
    "SupabaseClientError",
    # LLM
    "LLMError",
    # Utils
    "normalize_uuid",
    "round_money",
    "utc_now",
    "utc_now_iso",
]
