from mangum import Mangum
from main import app

# API Gateway entrypoint. Lifespan is off because Lambda containers never see shutdown.
handler = Mangum(app, lifespan="off")


def lambda_handler(event, context):
    return handler(event, context)
