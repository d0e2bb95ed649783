"""Services for twiggit."""
