from .quiz import router as quiz_router

routes = [
    quiz_router,
]
