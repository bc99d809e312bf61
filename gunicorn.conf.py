# Cricket Admin Gunicorn Configuration
#
# Scoring calls for a match are serialised by an in-process lock per match.
# Separate workers would each hold their own locks, leaving only the
# optimistic version check on the match row, so keep exactly 1 worker.

bind = "127.0.0.1:5000"
workers = 1
threads = 4
timeout = 120
wsgi_app = "app:create_app()"
