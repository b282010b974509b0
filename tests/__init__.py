"""Test suite for the pytest-macros package.

Unit tests cover macro registration and expansion, example groups and
the per-example context; pytester runs exercise generated groups
end to end against a small example shop application.
"""
