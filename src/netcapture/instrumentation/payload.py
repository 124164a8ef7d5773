"""Page-side JavaScript for the instrumentation capture strategy.

These scripts run inside the page, not in Python. ``INSTALL_SCRIPT``
wraps ``window.fetch`` and ``XMLHttpRequest`` so that matching responses
are appended to ``window.__netcapture.queue``; ``DRAIN_SCRIPT`` swaps
that queue for an empty one and returns its contents as JSON.
"""

from __future__ import annotations

# Argument: {"urlFilter": str | null, "contentTypeFilter": str | null}
# Returns: true when installed now, false when already installed
INSTALL_SCRIPT = """
(config) => {
  const existing = window.__netcapture;
  if (existing && existing.installed) {
    return false;
  }

  const state = {
    installed: true,
    queue: [],
    drain() {
      const items = this.queue;
      this.queue = [];
      return JSON.stringify(items);
    },
  };

  const shouldCapture = (url, contentType) => {
    if (config.urlFilter !== null && !String(url).includes(config.urlFilter)) {
      return false;
    }
    if (config.contentTypeFilter !== null) {
      return typeof contentType === "string" && contentType.includes(config.contentTypeFilter);
    }
    return true;
  };

  const record = (url, status, contentType, body) => {
    state.queue.push({ url: String(url), status, contentType: contentType || null, body });
  };

  const originalFetch = window.fetch;
  if (typeof originalFetch === "function") {
    window.fetch = async function (...args) {
      const response = await originalFetch.apply(this, args);
      try {
        const input = args[0];
        const url = response.url || (input && input.url) || String(input);
        const contentType = response.headers.get("content-type");
        if (shouldCapture(url, contentType)) {
          response
            .clone()
            .text()
            .then((body) => record(url, response.status, contentType, body))
            .catch(() => {});
        }
      } catch (e) {}
      return response;
    };
  }

  const proto = window.XMLHttpRequest && window.XMLHttpRequest.prototype;
  if (proto) {
    const originalOpen = proto.open;
    const originalSend = proto.send;

    proto.open = function (method, url, ...rest) {
      this.__netcaptureUrl = String(url);
      return originalOpen.call(this, method, url, ...rest);
    };

    proto.send = function (...args) {
      if (this.__netcaptureHooked) {
        return originalSend.apply(this, args);
      }
      this.__netcaptureHooked = true;
      this.addEventListener("load", () => {
        try {
          const url = this.responseURL || this.__netcaptureUrl;
          const contentType = this.getResponseHeader("content-type");
          if (!shouldCapture(url, contentType)) {
            return;
          }
          let body = "";
          if (this.responseType === "" || this.responseType === "text") {
            body = this.responseText;
          } else if (this.responseType === "json") {
            body = JSON.stringify(this.response);
          }
          record(url, this.status, contentType, body);
        } catch (e) {}
      });
      return originalSend.apply(this, args);
    };
  }

  window.__netcapture = state;
  return true;
}
"""

# Returns: JSON array of {url, status, contentType, body}
DRAIN_SCRIPT = """
() => {
  const state = window.__netcapture;
  if (!state || !state.installed) {
    return "[]";
  }
  return state.drain();
}
"""

# Returns: true when the capture state is present in the current document
PROBE_SCRIPT = """
() => Boolean(window.__netcapture && window.__netcapture.installed)
"""
