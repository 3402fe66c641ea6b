"""Prompt Wars game rules.

Phase transitions, the round timer, challenge and twist draws, round scoring
and CSV export. Routes and socket handlers call into these modules; none of
them touch the request.
"""
