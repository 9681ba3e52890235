#!/usr/bin/env python
"""Example: Monte Carlo fault campaign.

Flies many landings from random start points, each with a random set of
injected faults, and summarises how many the flight computer brings down on
the platform.

Usage:
    uv run python scripts/fault_campaign.py
"""

import logging

import polars as pl

from lander.simulation import CampaignMode, FaultCampaign

N_FLIGHTS = 200
SEED = 42


def main():
    for mode in (CampaignMode.NOMINAL, CampaignMode.CONTROLS_ONLY,
                 CampaignMode.CONTROLS_AND_SENSORS):
        print("=" * 60)
        print(f"CAMPAIGN: {mode.name} ({N_FLIGHTS} flights)")
        print("=" * 60)

        campaign = FaultCampaign(mode=mode, seed=SEED)
        results = campaign.run(n_flights=N_FLIGHTS, progress=True)
        df = results.to_dataframe()

        print(f"\nLanded: {results.success_rate:.1%}")
        print(df.group_by("outcome").agg(
            pl.len().alias("flights"),
            pl.col("ticks").mean().alias("mean_ticks"),
            pl.col("touchdown_vy").abs().mean().alias("mean_touchdown_speed"),
        ))

        failures = df.filter(pl.col("outcome") != "LANDED")
        if failures.height:
            print("\nUnsuccessful flights:")
            print(failures.select("outcome", "faults", "latched", "inferred").head(10))
        print()


if __name__ == "__main__":
    # Quiet per-flight latch warnings
    logging.basicConfig(level=logging.ERROR)
    main()
