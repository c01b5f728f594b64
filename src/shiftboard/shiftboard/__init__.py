"""Shiftboard package.

Organized by feature modules (shifts, approvals, auth) over a small
document-store layer, with a thin Flask controller layer on top of the
service/engine classes.
"""
