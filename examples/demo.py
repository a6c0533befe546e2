#!/usr/bin/env python3
"""
Quick demonstration of the equation engine and blob layout
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "app"))

from blobcalc.equation import EquationEngine
from blobcalc.layout import LayoutOptions, layout_for_terms


def demonstrate_keypad():
    """Show how key presses build the equation"""

    print("BLOBCALC KEYPAD DEMONSTRATION")
    print("=" * 50)

    sessions = [
        ("Simple addition", "12+3"),
        ("Leading zero ignored", "0+07"),
        ("Double plus ignored", "5++5"),
        ("Clear mid-way", "99+C4+4"),
        ("Large terms", "1200+34000"),
    ]

    for name, keys in sessions:
        engine = EquationEngine()
        rejected = [r.key for r in map(engine.apply_key, keys) if not r.applied]
        print(f"{name}:")
        print(f"  Keys:     {' '.join(keys)}")
        print(f"  Display:  {engine.display()}")
        if rejected:
            print(f"  Ignored:  {' '.join(rejected)}")
        print()


def demonstrate_layout():
    """Show blob sizing for a few areas"""

    print("BLOB LAYOUT DEMONSTRATION")
    print("=" * 50)

    terms = [12, 30]
    for width, height in [(320, 200), (120, 80), (40, 40)]:
        result = layout_for_terms(terms, width, height, LayoutOptions(), palette_size=6)
        print(f"{terms} in {width}x{height}:")
        print(f"  Diameter: {result.diameter:.2f}")
        print(f"  Placed:   {len(result.positions)}  Dropped: {result.dropped}")
        print()


if __name__ == "__main__":
    demonstrate_keypad()
    demonstrate_layout()

    print("=" * 50)
    print("HOW TO USE:")
    print("=" * 50)
    print("1. Interactive keypad: python -m blobcalc")
    print("2. API server:         python app/run_server.py")
    print("3. Run tests:          pytest")
