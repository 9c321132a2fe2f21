#!/usr/bin/env python3
"""
Lattice Pricing Harness
=======================

This script walks through the lattice_pricing package with literal inputs:
vanilla and Bermudan valuations, the validation errors raised for bad inputs,
and an implied-volatility search.

To run this example:
    python examples/pricing_harness.py

With custom parameters:
    python examples/pricing_harness.py --spot 100 --strike 100 --maturity 1.0 \
        --rate 0.05 --volatility 0.2 --steps 50 --market-price 10.0 --method fixed-gain
"""

import argparse
import logging

from lattice_pricing import (
    AmericanOption,
    BermudanOption,
    EuropeanOption,
    LatticePricingError,
    MarketData,
    Output,
    solve,
    value,
)


def parse_args():
    parser = argparse.ArgumentParser(
        description="Demonstration harness for the lattice_pricing package.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--spot", type=float, default=100.0, help="Current stock price")
    parser.add_argument("--strike", type=float, default=100.0, help="Strike price")
    parser.add_argument("--maturity", type=float, default=1.0, help="Time to maturity in years")
    parser.add_argument("--rate", type=float, default=0.05, help="Risk-free interest rate")
    parser.add_argument("--volatility", type=float, default=0.2, help="Annualized volatility")
    parser.add_argument("--steps", type=int, default=50, help="Number of lattice steps")
    parser.add_argument("--market-price", type=float, default=10.0, help="Observed option price")
    parser.add_argument("--max-iterations", type=int, default=100, help="Implied vol iteration cap")
    parser.add_argument("--tolerance", type=float, default=1e-4, help="Implied vol price tolerance")
    parser.add_argument(
        "--method",
        choices=("newton", "fixed-gain", "brent"),
        default="newton",
        help="Implied volatility search method",
    )
    parser.add_argument("--verbose", action="store_true", help="Log solver iterations")
    return parser.parse_args()


def print_result(name: str, result: Output, strike: float, spot: float, vol: float) -> None:
    print()
    print(f"{name}:")
    print(f"  Parameters: Strike={strike:.2f}, Spot={spot:.2f}, Vol={vol:.2%}")
    print(f"  Results:    {result}")


def main():
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    mkt = MarketData(
        price=args.market_price,
        spot=args.spot,
        rate=args.rate,
        volatility=args.volatility,
    )

    # ==========================================================================
    # Part 1: Vanilla options
    # ==========================================================================
    print("=" * 60)
    print("Vanilla Options")
    print("=" * 60)

    eu_call = EuropeanOption(args.strike, True, args.maturity)
    print_result("European Call", value(eu_call, mkt, args.steps), args.strike, args.spot, args.volatility)

    am_put = AmericanOption(args.strike, False, args.maturity)
    print_result("American Put", value(am_put, mkt, args.steps), args.strike, args.spot, args.volatility)

    # ==========================================================================
    # Part 2: Bermudan options
    # ==========================================================================
    print()
    print("=" * 60)
    print("Bermudan Options")
    print("=" * 60)

    begin, end = 0.25 * args.maturity, 0.75 * args.maturity
    berm_call = BermudanOption(args.strike, True, args.maturity, begin, end)
    print_result(
        f"Bermudan Call (Window: {begin:.2f}-{end:.2f})",
        value(berm_call, mkt, args.steps),
        args.strike,
        args.spot,
        args.volatility,
    )

    # ==========================================================================
    # Part 3: Validation
    # ==========================================================================
    print()
    print("=" * 60)
    print("Edge Cases")
    print("=" * 60)

    invalid_inputs = [
        ("negative strike", lambda: EuropeanOption(-100.0, True, 1.0)),
        ("inverted Bermudan window", lambda: BermudanOption(100.0, True, 1.0, 0.8, 0.5)),
        ("negative volatility", lambda: MarketData(10.0, 100.0, 0.05, -0.2)),
        ("zero maturity", lambda: EuropeanOption(100.0, True, 0.0)),
        ("negative valuation time", lambda: MarketData(10.0, 100.0, 0.05, 0.2, -1.0)),
        ("zero steps", lambda: value(eu_call, mkt, 0)),
    ]
    for label, build in invalid_inputs:
        try:
            build()
        except LatticePricingError as exc:
            print(f"  caught {label}: {type(exc).__name__}: {exc}")
        else:
            print(f"  FAILED: {label} was accepted")

    # ==========================================================================
    # Part 4: Implied volatility
    # ==========================================================================
    print()
    print("=" * 60)
    print("Implied Volatility")
    print("=" * 60)

    result = solve(
        eu_call,
        mkt,
        steps=args.steps,
        max_iterations=args.max_iterations,
        tolerance=args.tolerance,
        method=args.method,
    )
    print(f"Target Price: {args.market_price:.2f}")
    print_result("Implied Vol Calculation", result, args.strike, args.spot, result.implied_volatility)
    if result.iteration_count == args.max_iterations:
        print("  (search did not converge; value is a best-effort estimate)")


if __name__ == "__main__":
    main()
