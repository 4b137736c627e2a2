"""
Services plans app.

Holds the care plan domain: plans, their service items and funding
sources, the client funding profile, and the cost allocation logic
that spreads a plan's cost across its funding sources.
"""
