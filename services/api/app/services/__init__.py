"""Business logic services.

Services contain the compare pipeline and are called by routes:
keys -> seed -> identity -> (variants, offers, observations, price_stats).
Pure helpers (parsing, policies, statistics) are kept separate from the queries.
"""
