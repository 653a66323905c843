"""Judge status and result codes."""

# Result codes shared by whole submissions and individual cases
RESULT_CODES = {
    'AC': 'Accepted',
    'WA': 'Wrong Answer',
    'TLE': 'Time Limit Exceeded',
    'MLE': 'Memory Limit Exceeded',
    'OLE': 'Output Limit Exceeded',
    'IR': 'Invalid Return',
    'RTE': 'Runtime Error',
    'CE': 'Compile Error',
    'IE': 'Internal Error',
    'SC': 'Short Circuited',
    'AB': 'Aborted',
}

# Submission status while it is still in the judge's hands
STATUS_CODES = {
    'QU': 'Queued',
    'P': 'Processing',
    'G': 'Grading',
    'D': 'Completed',
    'IE': 'Internal Error',
    'CE': 'Compile Error',
    'AB': 'Aborted',
}


def describe(code: str | None) -> str:
    """Human-readable label for a result or status code. Unknown codes are returned as-is."""
    if not code:
        return ""
    return RESULT_CODES.get(code) or STATUS_CODES.get(code) or code
