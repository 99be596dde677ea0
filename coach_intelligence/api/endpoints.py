from fastapi import APIRouter

from coach_intelligence.api.routes import context, embeddings, knowledge, pipeline


router = APIRouter()

router.include_router(embeddings.router)
router.include_router(knowledge.router)
router.include_router(context.router)
router.include_router(pipeline.router)
