"""Services built on the rate limit stores."""
