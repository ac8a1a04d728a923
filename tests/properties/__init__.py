"""
Property-based testing using Hypothesis.

This package contains property tests that verify mathematical invariants
hold across randomly generated inputs.

Modules:
    test_curve_properties: Discount/survival curve and day count invariants
    test_option_properties: Black-76/Bachelier invariants (bounds, parity, implied vol)
    test_basket_properties: Basket loss distribution and tranche invariants
"""
