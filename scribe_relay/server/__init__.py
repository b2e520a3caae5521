"""HTTP API: submit media, poll job status, download the markdown transcript."""
