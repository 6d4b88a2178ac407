"""
Infrastructure Package
======================

Database connection management shared by the SLA module.
"""
