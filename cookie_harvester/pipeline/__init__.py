"""Request pipeline — progress channel, orchestration and SSE encoding."""
