"""
Race Calculator - Projects when Solana's wrapped-BTC supply catches Ethereum's
"""
import math
from typing import Optional

from wbtc_race.core.data_models import RaceProjection, Snapshot
from wbtc_race.core.exceptions import DataValidationError
from wbtc_race.config.constants import DEFAULT_STAKING_APY
from wbtc_race.utils.helpers import parse_decimal


def project_catch_up(
    ethereum_total: float,
    solana_total: float,
    mint_rate: float,
    staked_sol: float,
    sol_btc_price: float,
    apy: float = DEFAULT_STAKING_APY
) -> RaceProjection:
    """
    Estimate the days until Solana matches Ethereum

    Args:
        ethereum_total: Wrapped BTC on Ethereum
        solana_total: Wrapped BTC on Solana
        mint_rate: BTC minted on Solana per day, excluding staking
        staked_sol: SOL staked, with rewards swapped to BTC
        sol_btc_price: SOL price in BTC
        apy: Staking APY as a fraction

    Returns:
        RaceProjection; days_to_catch_up is None when daily growth is not positive
    """
    if mint_rate < 0 or staked_sol < 0:
        raise DataValidationError("mint_rate and staked_sol must be non-negative")

    daily_yield = apy / 365
    daily_sol_rewards = staked_sol * daily_yield
    staking_btc_per_day = daily_sol_rewards * sol_btc_price
    total_btc_per_day = mint_rate + staking_btc_per_day
    difference = ethereum_total - solana_total

    # SOL to stake so staking alone yields mint_rate BTC per day
    required_staked_sol: Optional[float] = None
    denominator = daily_yield * sol_btc_price * 365
    if denominator > 0:
        required_staked_sol = mint_rate * 365 / denominator

    already_caught_up = solana_total >= ethereum_total
    days: Optional[int] = None
    if not already_caught_up and total_btc_per_day > 0:
        days = math.ceil(difference / total_btc_per_day)

    return RaceProjection(
        ethereum_total=ethereum_total,
        solana_total=solana_total,
        difference=difference,
        mint_rate=mint_rate,
        staked_sol=staked_sol,
        sol_btc_price=sol_btc_price,
        daily_sol_rewards=daily_sol_rewards,
        staking_btc_per_day=staking_btc_per_day,
        total_btc_per_day=total_btc_per_day,
        already_caught_up=already_caught_up,
        days_to_catch_up=days,
        required_staked_sol=required_staked_sol
    )


def project_from_snapshot(snapshot: Snapshot, mint_rate: float, staked_sol: float) -> RaceProjection:
    """Run the projection on a snapshot's chain totals and price"""
    return project_catch_up(
        ethereum_total=float(parse_decimal(snapshot.ethereum_total)),
        solana_total=float(parse_decimal(snapshot.solana_total)),
        mint_rate=mint_rate,
        staked_sol=staked_sol,
        sol_btc_price=snapshot.price_quote
    )
