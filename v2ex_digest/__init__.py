"""V2EX daily digest: collect, rank, summarize and publish hot topics."""

__version__ = "0.1.0"
