class BackupClientError(Exception):
    """
    Raised when the backup service cannot be reached or returns an unusable
    answer.

    Callers treat this as "no new information": counts are reported as unknown
    and the import task records the failure and retries.
    """

    pass


class ImportAbandoned(Exception):
    """
    Raised inside the import task when the job stopped being ``running``
    between two batches, usually because an operator reset it.
    """

    pass
