"""
Course fields: the category registry courses point at.

A field cannot be deleted while any course still references it.
"""
