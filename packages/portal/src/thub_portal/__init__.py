"""THub portal: the application layer over the client packages.

Portal wires the shared services together and owns their lifecycle; the
remaining modules hold the behaviour of the portal's interactive pieces (exam
selector, alert banner, certificate verification, installment plans) with the
rendering left to whoever embeds them. `thub` is the command-line front end.
"""
