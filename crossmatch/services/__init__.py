"""Service layer: durable storage, result cache, profit calculation, browsing
contexts and the remote marketplace-data API client."""
