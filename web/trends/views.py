import logging
import threading
from functools import wraps

from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from trendhunter.config import settings
from trendhunter.insights import Summarizer, signal_summary_text
from trendhunter.main import TrendPipeline

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,OPTIONS,PATCH,DELETE,POST,PUT",
    "Access-Control-Allow-Headers": (
        "X-CSRF-Token, X-Requested-With, Accept, Accept-Version, Content-Length, "
        "Content-MD5, Content-Type, Date, X-Api-Version"
    ),
}

_lock = threading.Lock()
_pipeline = None
_summarizer = None


def get_pipeline() -> TrendPipeline:
    """Built once per process; the gateway inside it is shared by every request."""
    global _pipeline
    with _lock:
        if _pipeline is None:
            _pipeline = TrendPipeline.from_settings(settings)
        return _pipeline


def get_summarizer() -> Summarizer:
    global _summarizer
    with _lock:
        if _summarizer is None:
            _summarizer = Summarizer.from_settings(settings)
        return _summarizer


def with_cors(view):
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        if request.method == "OPTIONS":
            resp = HttpResponse(status=200)
        else:
            resp = view(request, *args, **kwargs)
        for k, v in CORS_HEADERS.items():
            resp[k] = v
        return resp
    return wrapper


@csrf_exempt
@with_cors
@require_http_methods(["GET"])
def trends(request):
    # discovery runs on its own schedule (python -m trendhunter.discover), never here
    try:
        records = get_pipeline().run()
    except Exception:
        logger.exception("API Error")
        return JsonResponse({"error": "Failed to fetch trends"}, status=500)

    return JsonResponse([r.to_dict() for r in records], safe=False)


@csrf_exempt
@with_cors
@require_http_methods(["GET"])
def trend_analysis(request):
    term = (request.GET.get("term") or "").strip()
    if not term:
        return JsonResponse({"error": "term is required"}, status=400)

    try:
        pipeline = get_pipeline()
        tracked = pipeline.find_term(term)
        if tracked is None:
            return JsonResponse({"error": f"{term!r} is not tracked"}, status=404)

        record = pipeline.run_one(tracked)
        analysis = get_summarizer().summarize(
            tracked.term,
            signal_summary_text(record.signals),
            record.scores,
            category=tracked.category,
            region=f"{tracked.region} ({tracked.neighborhood})" if tracked.neighborhood else tracked.region,
        )
    except Exception:
        logger.exception("API Error")
        return JsonResponse({"error": "Failed to analyze trend"}, status=500)

    return JsonResponse({
        "term": tracked.term,
        "trend": record.to_dict(),
        "analysis": analysis.to_dict(),
    })
