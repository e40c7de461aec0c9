"""
Ban Policy

A pure function of an account's cumulative rejection count.
"""

from dataclasses import dataclass

BAN_THRESHOLD = 3


@dataclass(frozen=True)
class BanDecision:
    can_reapply_allowed: bool
    banned: bool


def evaluate(rejection_count: int) -> BanDecision:
    """
    Decide ban status from the number of rejections across all institutions.

    Once ``rejection_count`` reaches ``BAN_THRESHOLD`` the account is banned
    and reapplication can no longer be granted.
    """
    if rejection_count < 0:
        raise ValueError(f"rejection_count cannot be negative: {rejection_count}")

    banned = rejection_count >= BAN_THRESHOLD
    return BanDecision(can_reapply_allowed=not banned, banned=banned)
