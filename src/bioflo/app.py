from fastapi import FastAPI

from bioflo.api.chat import router as chat_router

app = FastAPI(title="BioFlo API")
app.include_router(chat_router)
