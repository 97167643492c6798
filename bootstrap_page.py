"""Static page served on GET / that asks the browser for its position."""

from html import escape

GEO_TIMEOUT_MS = 5000

DEFAULT_STATUS = "Tracking location…"

# HTML page asks for location via browser GPS and posts every fix to /update
HTML_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Location</title>
  <style>
    body { margin: 0; padding: 20px; font-family: monospace; background: #000; color: #0f0; }
    #status { font-size: 14px; }
  </style>
</head>
<body>
  <div id="status">__STATUS__</div>
  <script>
    let watchId = null;

    function show(text) {
      document.getElementById('status').textContent = text;
    }

    window.addEventListener('DOMContentLoaded', () => {
      if (!navigator.geolocation) {
        show('Geolocation is not supported by this browser.');
        return;
      }

      watchId = navigator.geolocation.watchPosition(
        async (position) => {
          const data = {
            latitude: position.coords.latitude,
            longitude: position.coords.longitude,
            accuracy: position.coords.accuracy,
            timestamp: Date.now()
          };

          show(`Latitude: ${data.latitude.toFixed(6)}, Longitude: ${data.longitude.toFixed(6)}, Accuracy: ${data.accuracy.toFixed(2)}m`);

          try {
            const response = await fetch('/update', {
              method: 'POST',
              headers: { 'Content-Type': 'application/json' },
              body: JSON.stringify(data)
            });
            if (response.ok) {
              navigator.geolocation.clearWatch(watchId);
              show('✅ Location received. You can close this tab.');
              window.close();
            }
          } catch (error) {
            console.error('Failed to send location:', error);
          }
        },
        (error) => {
          show('Location error: ' + error.message);
        },
        {
          enableHighAccuracy: true,
          maximumAge: 0,
          timeout: __TIMEOUT__
        }
      );
    });
  </script>
</body>
</html>
"""


def render_page(status: str = DEFAULT_STATUS) -> str:
    return (
        HTML_PAGE
        .replace("__STATUS__", escape(status))
        .replace("__TIMEOUT__", str(GEO_TIMEOUT_MS))
    )
