"""The control page served at ``/``."""

INDEX_HTML = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Nexus Network CLI Setup</title>
  <style>
    body { font-family: Arial, sans-serif; margin: 40px; }
    .status { margin: 10px 0; padding: 10px; border-radius: 5px; }
    .status.info { background: #e3f2fd; }
    .status.error { background: #ffebee; color: #c62828; }
    .status.success { background: #e8f5e8; color: #2e7d32; }
    button { padding: 15px 30px; font-size: 18px; background: #2196f3; color: white;
             border: none; border-radius: 5px; cursor: pointer; }
    button:hover { background: #1976d2; }
    button:disabled { background: #90caf9; cursor: default; }
    #output { margin-top: 20px; max-height: 400px; overflow-y: auto;
              border: 1px solid #ddd; padding: 20px; }
    pre.terminal { margin: 0; padding: 5px; background: #000; color: #fff;
                   font-family: monospace; font-size: 12px; white-space: pre-wrap; }
  </style>
</head>
<body>
  <h1>Nexus Network CLI Setup</h1>
  <p>Click the button below to install the Nexus CLI and start a node contributing to the network.</p>
  <button id="start" onclick="startSetup()">Start Nexus Setup</button>
  <div id="output"></div>

  <script>
    function addStatus(output, kind, text) {
      const div = document.createElement('div');
      div.className = 'status ' + kind;
      div.textContent = text;
      output.appendChild(div);
    }

    function startSetup() {
      const button = document.getElementById('start');
      const output = document.getElementById('output');
      button.disabled = true;
      output.innerHTML = '';
      addStatus(output, 'info', 'Connecting to server...');

      const eventSource = new EventSource('/run');

      eventSource.onmessage = function(event) {
        const data = JSON.parse(event.data);
        if (data.type === 'terminal') {
          const pre = document.createElement('pre');
          pre.className = 'terminal';
          pre.textContent = data.output;
          output.appendChild(pre);
        } else {
          const kind = data.type === 'error' ? 'error' : data.type === 'complete' ? 'success' : 'info';
          addStatus(output, kind, data.message);
        }
        output.scrollTop = output.scrollHeight;

        if (data.type === 'complete' || data.type === 'error') {
          eventSource.close();
          button.disabled = false;
        }
      };

      eventSource.onerror = function() {
        addStatus(output, 'error', 'Connection lost');
        eventSource.close();
        button.disabled = false;
      };
    }
  </script>
</body>
</html>
"""
