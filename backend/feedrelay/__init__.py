"""feedrelay: one upstream market-data connection fanned out to many subscribers."""
