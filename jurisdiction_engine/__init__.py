"""Location-to-jurisdiction resolution and representative aggregation engine.

Resolves a five-digit ZIP code to a classified jurisdiction, decides which
tiers of government (federal, state, local) can be shown for it, and fans
out to one source adapter per tier to build a single representative roster.
"""

__version__ = "1.0.0"
