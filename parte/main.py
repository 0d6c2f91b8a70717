from parte.config.settings import Settings
from parte.database.connection import close_pool, init_pool
from parte.database.repositories.job_repository import JobRepository
from parte.logging.logger import Log
from parte.processor.processor import build_processor
from parte.worker.job_runner import JobRunner
from parte.worker.worker import Worker


def main() -> None:
    """Entry point: initialize pool -> build extraction pipelines -> start worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    settings.media_root.mkdir(parents=True, exist_ok=True)
    settings.temp_root.mkdir(parents=True, exist_ok=True)
    init_pool(settings)

    try:
        processor = build_processor(settings)
        job_repo = JobRepository(settings.max_job_attempts)
        job_runner = JobRunner(processor, job_repo, settings)
        worker = Worker(job_repo, job_runner, settings)
        worker.run()
    finally:
        close_pool()


if __name__ == "__main__":
    main()
