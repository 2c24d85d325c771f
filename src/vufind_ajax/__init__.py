"""VuFind AJAX service.

Dispatches asynchronous catalog requests (item statuses, facets, comments,
tags, patron account summaries, link resolvers, interlibrary loan) through a
single JSON endpoint.
"""

__version__ = "1.0.0"
