"""Release orchestration services.

One release cycle runs: resolve version -> tag -> build matrix ->
aggregate + publish release -> update downstream formula.
"""
