"""Content DNA: analysis, storage and the background computation queue."""

from streamsense.services.dna.analyzer import analyze_content, dna_from_details
from streamsense.services.dna.queue import DNAComputationQueue, DNAProgressEvent, QueueItem
from streamsense.services.dna.service import ContentDNAService

__all__ = [
    "ContentDNAService",
    "DNAComputationQueue",
    "DNAProgressEvent",
    "QueueItem",
    "analyze_content",
    "dna_from_details",
]
