"""
Object storage systems for the read benchmark.
"""
