from celery import shared_task

from . import orchestrator


@shared_task(bind=True)
def process_dubbing_job(self, job_id: str):
    # run() records failures on the job itself; nothing is re-raised or retried.
    orchestrator.run(job_id)
