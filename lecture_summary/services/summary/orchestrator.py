import logging

from lecture_summary.schemas.summary import SummaryJob
from lecture_summary.services.summary.db_utils import SummaryStore
from lecture_summary.services.summary.llm_utils import SummarizerClient
from lecture_summary.services.summary.transcript_utils import TranscriptResolver
from lecture_summary.utils.metrics import summary_job_failures_total, summary_jobs_total


class SummaryJobRunner:
    """
    Runs resolve -> summarize -> save for one lecture.

    A failure at any step stops the job, is logged with the lecture id and the
    failing step, and is swallowed: the trigger has already been acknowledged
    and there is nobody left to report to.
    """

    def __init__(
        self,
        resolver: TranscriptResolver,
        summarizer: SummarizerClient,
        store: SummaryStore,
    ):
        self.resolver = resolver
        self.summarizer = summarizer
        self.store = store

    async def run(self, job: SummaryJob) -> bool:
        lecture_id = job.lecture_id
        step = "resolve"
        try:
            # 1. Resolve the transcript (inline text short-circuits the fetch)
            transcription = await self.resolver.resolve(
                job.transcription, job.transcription_json_url
            )

            # 2. Call the AI model
            step = "summarize"
            logging.info(f"[{lecture_id}]: Generating summary")
            summary_text = await self.summarizer.summarize(transcription, lecture_id)

            # 3. Persist. Only reached once a summary exists
            step = "save"
            logging.info(f"[{lecture_id}]: Saving summary")
            await self.store.save(lecture_id, summary_text)
        except Exception as e:
            logging.error(
                f"[{lecture_id}]: Failed to generate or save summary at step '{step}': "
                f"{type(e).__name__}: {e}",
                exc_info=True,
                extra={"lecture_id": lecture_id, "step": step, "trigger": job.trigger},
            )
            summary_jobs_total.labels(trigger=job.trigger, outcome="failed").inc()
            summary_job_failures_total.labels(step=step).inc()
            return False

        logging.info(f"[{lecture_id}]: Summary generated and saved")
        summary_jobs_total.labels(trigger=job.trigger, outcome="succeeded").inc()
        return True
