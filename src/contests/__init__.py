"""
Contest query engine - read-only views over contests and related activity.

Provides:
1. Contest listing with participants, rewards, leaderboards and creator summaries
2. Contests a platform user touched through their bound wallets
3. Contest creation requests of an organizer
4. Wallet binding lookup
"""

from .service import ContestQueryService

__all__ = ["ContestQueryService"]
