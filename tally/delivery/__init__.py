"""Channel senders, the delivery HTTP client and the combined dispatcher."""
