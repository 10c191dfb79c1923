# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

from .time_rewriter import TimestampRewriter, DATE_FORMAT

__all__ = ['TimestampRewriter', 'DATE_FORMAT']
