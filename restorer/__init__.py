"""
Design
======

The restorer moves entries kept by the remote backup service into local
storage as a single, resumable import job.

General goals:

* The job record lives in one option row (``configuration.Option`` named
  ``backup_restore``) and every status change is a compare-and-set made under
  ``select_for_update``, so two concurrent requests can never both schedule
  the import
* Short-lived state (credential locks, the list of imported entries, the last
  error, the cached upstream count) lives in the Django cache and is always
  cleared together by the reset engine
* Celery tasks are ephemeral: the import task re-reads the job record between
  batches and stops as soon as the job was reset underneath it

The flow works like this:

1. Every request which may show restore notices calls
   ``RestoreController.on_tick(action)`` with the action the operator asked for
   (``import``, ``reset``, ``count``, ``restart`` or nothing).
2. ``decide()`` turns the action and the current status into a ``Decision``.
3. The controller applies the decision: it claims the job and enqueues the
   import task, resets the job, or repairs a stalled job.
4. The ``Notifier`` derives the notices for the updated state. The completion
   notice is shown once: rendering it flips ``user_notified`` on the job.
5. The import task moves the job from ``scheduled`` to ``running`` to
   ``done``. Failures are counted; once the configured fail limit is reached
   the error notice is shown until the job is reset.
"""
