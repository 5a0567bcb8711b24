"""
osi_certify — certification workflow for supplement products.

Validates structured OSI supplement records, walks them through review,
issues signed certificates for approved records and resolves certificate
numbers for public verification, recording every lookup.

Built on the Railway-Oriented Programming (ROP) framework for
explicit, composable, functional error handling.
"""

__version__ = "0.1.0"
