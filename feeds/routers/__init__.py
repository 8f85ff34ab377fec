from .threads import router as threads_router

routes = [
    threads_router,
]
