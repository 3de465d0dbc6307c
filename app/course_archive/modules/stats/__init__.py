"""
Dashboard statistics: counts and sums over courses, recomputed per request.
"""
