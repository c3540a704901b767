"""
Leads app.

Holds the two purchasable lead kinds (system leads for contractors, HES
requests for affiliates) and the per-contractor lead tracking rows. The
catalog itself is managed elsewhere; this app only exposes what the
payment workflow reads and the atomic ownership transfer it performs.
"""
