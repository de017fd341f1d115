"""Multi-turn task execution against a CLI-driven LLM worker.

One task is run as up to five sequential turns. Each turn renders a prompt,
invokes the worker CLI through a process runner with a bounded timeout, and
classifies stdout as complete or not. The loop stops on the first completed
turn, on a failed final turn, or when the wall-clock budget can no longer fit
another turn.

The worker gateway and the process runner are collaborators: the loop only
asks the gateway to be ready once before turn 1 and never manages its
lifecycle.
"""
