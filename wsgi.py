from app import create_app

app = create_app()

# gunicorn -w 2 wsgi:app
# Set IS_SCHEDULER_INSTANCE=1 on exactly one worker host to run the daily maintenance job.
