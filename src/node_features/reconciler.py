#!/usr/bin/env python3
"""
Node Features - Feature Set Reconciler

Merges freshly computed features into a host-supplied feature list:
features we own are replaced by the new ones, everything else is kept.

Feature lists are comma-separated strings. None means "absent" and is
kept distinct from the empty string in results.
"""

import logging
from typing import List, Optional

from .codec import FEATURE_DELIMITER, FeatureStringCodec, split_features

logger = logging.getLogger(__name__)

JOB_FEATURE_DELIMITER = "&"


class FeatureSetReconciler:
    """Set operations over comma-separated feature lists."""

    def __init__(self, codec: Optional[FeatureStringCodec] = None):
        self.codec = codec or FeatureStringCodec()

    def xlate(
        self,
        new_features: Optional[str],
        orig_features: Optional[str],
        avail_features: Optional[str] = None,
    ) -> Optional[str]:
        """
        Compute new_features + (orig_features - our features).

        Foreign tokens of orig_features are kept in their original order
        unless already present; our own tokens in orig_features are dropped,
        since new_features supersedes them. avail_features does not affect
        the result.
        """
        logger.debug(f"xlate: new_features = {new_features}")
        logger.debug(f"xlate: orig_features = {orig_features}")
        logger.debug(f"xlate: avail_features = {avail_features}")

        # Short-circuit, no union necessary
        if not new_features:
            return orig_features
        if not orig_features:
            return new_features

        seen = set(new_features.split(FEATURE_DELIMITER))
        kept: List[str] = []
        for token in split_features(orig_features):
            if self.codec.is_owned(token) or token in seen:
                continue
            seen.add(token)
            kept.append(token)

        return FEATURE_DELIMITER.join([new_features] + kept)

    def job_xlate(self, job_features: Optional[str]) -> Optional[str]:
        """
        Reduce a job's "&"-joined feature request to the features we own.

        If none are ours the request is returned unchanged.
        """
        logger.debug(f"job_xlate: job_features = {job_features}")
        if not job_features:
            return job_features

        ours = [
            token
            for token in split_features(job_features, JOB_FEATURE_DELIMITER)
            if self.codec.is_owned(token)
        ]
        if not ours:
            return job_features
        return JOB_FEATURE_DELIMITER.join(ours)

    def reorder(self, new_features: Optional[str]) -> Optional[str]:
        """Final ordering pass over a feature list; currently the identity."""
        logger.debug(f"reorder: new_features = {new_features}")
        return new_features
