"""Palm Comps: listing resolution and short-term rental economics."""
