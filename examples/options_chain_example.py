#!/usr/bin/env python3
"""
Options Chain Example
=====================

This script prices a strike ladder of European, American and Bermudan calls
and puts on the binomial lattice and writes a plain-text chain report.

To run this example:
    python examples/options_chain_example.py

With custom parameters:
    python examples/options_chain_example.py --ticker AAPL --spot 180 --maturity 0.25 \
        --rate 0.045 --volatility 0.28 --steps 100 --seed 7 --output examples/options_data.txt
"""

import argparse
import logging

from lattice_pricing import (
    MarketData,
    format_chain,
    lattice_convergence,
    make_option,
    options_chain,
    richardson_extrapolation,
    write_chain_report,
)


def parse_args():
    parser = argparse.ArgumentParser(
        description="Options chain report built from binomial lattice prices.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--ticker", type=str, default="DEMO", help="Underlying symbol")
    parser.add_argument("--spot", type=float, default=100.0, help="Current stock price")
    parser.add_argument("--maturity", type=float, default=0.5, help="Time to expiry in years")
    parser.add_argument("--rate", type=float, default=0.05, help="Risk-free interest rate")
    parser.add_argument("--volatility", type=float, default=0.25, help="Annualized volatility")
    parser.add_argument("--iv-rank", type=float, default=35.0, help="IV rank in percent (display only)")
    parser.add_argument("--dividend-yield", type=float, default=0.0, help="Dividend yield (display only)")
    parser.add_argument("--steps", type=int, default=50, help="Number of lattice steps")
    parser.add_argument("--seed", type=int, default=42, help="Random seed for synthetic volume")
    parser.add_argument("--output", type=str, default="options_data.txt", help="Report output file")
    parser.add_argument("--convergence", action="store_true", help="Also print an ATM convergence table")
    return parser.parse_args()


def main():
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    # The observed price is only needed by the implied-vol solver; any
    # positive placeholder is valid for plain valuation.
    mkt = MarketData(price=1.0, spot=args.spot, rate=args.rate, volatility=args.volatility)

    chain = options_chain(mkt, args.maturity, steps=args.steps, seed=args.seed)
    report = format_chain(
        chain,
        ticker=args.ticker,
        spot=args.spot,
        rate=args.rate,
        maturity=args.maturity,
        iv_rank=args.iv_rank,
        dividend_yield=args.dividend_yield,
    )

    print(report)
    path = write_chain_report(report, args.output)
    print(f"Report saved to: {path}")

    if args.convergence:
        atm_put = make_option("american", args.spot, False, args.maturity)
        table = richardson_extrapolation(
            lattice_convergence(atm_put, mkt, [25, 50, 100, 200, 400, 800])
        )
        print()
        print("ATM American put convergence (reference = finest lattice,")
        print("extrapolated = first-order Richardson on consecutive refinements)")
        print(table.to_string(index=False))


if __name__ == "__main__":
    main()
