"""
Institutions Module

Mosques listed in the directory, their verification codes and the
background job that rotates expired codes.
"""
