# =============================================================================
# lib/supabase_client.py - Supabase Client Wrapper
# =============================================================================
# This module provides a typed wrapper for Supabase database operations.
# It implements the singleton pattern to reuse a single client connection
# and provides helpers shared by every service:
# - Single-row lookups that return None instead of raising
# - Stored procedure (RPC) calls for balance and ledger mutation
# - Public storage uploads for generated images
# - PostgREST / Postgres error classification
#
# Usage:
#   from lib.supabase_client import SupabaseClient
#   character = SupabaseClient.fetch_character(character_id)
#   result = SupabaseClient.rpc("deduct_coins", {...})
# =============================================================================

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from supabase import create_client, Client

from app.config import settings

# Set up logging for this module
logger = logging.getLogger(__name__)

# PostgREST code for "no rows" on .single()
NOT_FOUND_CODE = "PGRST116"

# Postgres unique_violation
UNIQUE_VIOLATION_CODE = "23505"


class SupabaseClientError(Exception):
    """
    Error during Supabase operations.

    Carries a code and an optional suggestion so callers can surface an
    actionable message.
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result


class SupabaseClient:
    """
    Typed wrapper for Supabase database operations.

    Implements singleton pattern - one client instance is shared across
    the application. All methods are class methods for easy access without
    instantiation.

    Example:
        character = SupabaseClient.fetch_character("550e8400-...")
        if character is None:
            raise CharacterNotFoundError(...)

        rows = SupabaseClient.rpc("get_creator_available_balance", {"p_creator_id": uid})
    """

    _instance: Client | None = None

    @classmethod
    def get_client(cls) -> Client:
        """
        Get or create the singleton Supabase client.

        Uses service_role key which bypasses Row Level Security (RLS), so
        every service must check ownership itself.

        Raises:
            SupabaseClientError: If client creation fails
        """
        if cls._instance is None:
            try:
                cls._instance = create_client(
                    settings.SUPABASE_URL,
                    settings.SUPABASE_SERVICE_KEY
                )
                logger.info("Supabase client initialized successfully")
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file"
                )
        return cls._instance

    @classmethod
    def _normalize_uuid(cls, uuid_value: str | UUID) -> str:
        """Convert UUID to string for queries."""
        return str(uuid_value) if isinstance(uuid_value, UUID) else uuid_value

    # -------------------------------------------------------------------------
    # Error Classification
    # -------------------------------------------------------------------------

    @staticmethod
    def is_not_found(error: Exception) -> bool:
        """True if a PostgREST error means the row doesn't exist."""
        return NOT_FOUND_CODE in str(error)

    @staticmethod
    def is_unique_violation(error: Exception) -> bool:
        """True if an insert hit a unique constraint."""
        return UNIQUE_VIOLATION_CODE in str(error) or "duplicate key" in str(error)

    # -------------------------------------------------------------------------
    # Generic Reads
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_one(
        cls,
        table: str,
        columns: str = "*",
        **filters: Any,
    ) -> dict[str, Any] | None:
        """
        Fetch a single row matching all equality filters.

        Args:
            table: Table name
            columns: PostgREST select expression
            **filters: column=value equality filters

        Returns:
            Row dict, or None if nothing matches

        Raises:
            SupabaseClientError: If the query fails

        Example:
            tier = SupabaseClient.fetch_one("creator_tiers", id=tier_id, is_active=True)
        """
        client = cls.get_client()

        try:
            query = client.table(table).select(columns)
            for column, value in filters.items():
                query = query.eq(column, cls._normalize_uuid(value))
            response = query.limit(1).execute()

            rows = response.data or []
            return rows[0] if rows else None

        except Exception as e:
            if cls.is_not_found(e):
                return None
            raise SupabaseClientError(
                message=f"Failed to fetch from {table}: {e}",
                code="FETCH_FAILED",
                details={"table": table, "filters": {k: str(v) for k, v in filters.items()}}
            )

    @classmethod
    def fetch_character(cls, character_id: str | UUID, columns: str = "*") -> dict[str, Any] | None:
        """Fetch a character by ID, or None."""
        return cls.fetch_one("characters", columns=columns, id=character_id)

    @classmethod
    def fetch_profile(cls, user_id: str | UUID) -> dict[str, Any] | None:
        """Fetch a user's public profile row, or None."""
        return cls.fetch_one("profiles", id=user_id)

    # -------------------------------------------------------------------------
    # Stored Procedures
    # -------------------------------------------------------------------------

    @classmethod
    def rpc(cls, function_name: str, params: dict[str, Any]) -> Any:
        """
        Call a Postgres function and return its data.

        Balance-mutating procedures (deduct_coins, add_coins,
        create_payout_request, mark_earnings_paid_out) run in a single
        database transaction; callers never update balances directly.

        Raises:
            SupabaseClientError: If the call fails
        """
        client = cls.get_client()
        clean_params = {
            key: cls._normalize_uuid(value) if isinstance(value, UUID) else value
            for key, value in params.items()
        }

        try:
            response = client.rpc(function_name, clean_params).execute()
            return response.data

        except Exception as e:
            raise SupabaseClientError(
                message=f"RPC {function_name} failed: {e}",
                code="RPC_FAILED",
                details={"function": function_name}
            )

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------

    @classmethod
    def upload_public_file(
        cls,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str,
    ) -> str:
        """
        Upload bytes to a public bucket and return the public URL.

        Raises:
            SupabaseClientError: If the upload fails
        """
        client = cls.get_client()

        try:
            client.storage.from_(bucket).upload(
                path=path,
                file=content,
                file_options={"content-type": content_type, "upsert": "true"}
            )
            public_url = client.storage.from_(bucket).get_public_url(path)
            logger.info(f"Uploaded {len(content)} bytes to {bucket}/{path}")
            return public_url.rstrip("?")

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to upload to storage: {e}",
                code="STORAGE_UPLOAD_FAILED",
                suggestion=f"Check that the '{bucket}' bucket exists and is public",
                details={"bucket": bucket, "path": path}
            )
