"""Apify actor backends.

Sub-modules:
- ``config``     — API paths, input builders and the domain → actor table
- ``selector``   — ordered candidate list for a target
- ``backoff``    — poll-loop interval and budget policy
- ``runner``     — submit, poll, fetch and abort of one actor run
- ``normalizer`` — raw dataset item → ``ScrapedItem``
"""
